"""Suggestion synchronization engine: offsets, registry, scheduling, rendering."""

from grammy.engine.normalizer import normalize
from grammy.engine.registry import AcceptResult, RegistrySnapshot, SuggestionRegistry, apply_suggestion
from grammy.engine.render import AnnotatedText, CaretPosition, RenderSynchronizer, TextRun, annotate
from grammy.engine.resolver import resolve
from grammy.engine.scheduler import CheckScheduler, SchedulerEvent, SchedulerState
from grammy.engine.session import EditorSession
from grammy.engine.status import StatusChannel
from grammy.engine.surface import BufferSurface, VisualSurface
from grammy.engine.units import UnitScheme, build_offset_table, unit_length

__all__ = [
    "AcceptResult",
    "AnnotatedText",
    "BufferSurface",
    "CaretPosition",
    "CheckScheduler",
    "EditorSession",
    "RegistrySnapshot",
    "RenderSynchronizer",
    "SchedulerEvent",
    "SchedulerState",
    "StatusChannel",
    "SuggestionRegistry",
    "TextRun",
    "UnitScheme",
    "VisualSurface",
    "annotate",
    "apply_suggestion",
    "build_offset_table",
    "normalize",
    "resolve",
    "unit_length",
]
