"""Strategy executors: one per scope kind, plus the fallback tiers."""

from react_modifier.strategies.base import (
    APPROACH_COMPONENT_ADDITION,
    APPROACH_FALLBACK,
    APPROACH_FULL_FILE,
    APPROACH_TAILWIND,
    APPROACH_TARGETED_NODES,
    APPROACH_TEXT_BASED,
    StrategyExecutor,
)
from react_modifier.strategies.component_addition import ComponentAdditionSystem
from react_modifier.strategies.emergency import EmergencyCreator
from react_modifier.strategies.exceptions import IntegrationError, StrategyError
from react_modifier.strategies.fallback import FallbackProcessor
from react_modifier.strategies.full_file import FullFileProcessor
from react_modifier.strategies.tailwind import TailwindProcessor, validate_tailwind_config
from react_modifier.strategies.targeted_nodes import TargetedNodesProcessor
from react_modifier.strategies.text_based import TextBasedProcessor

__all__ = [
    "APPROACH_COMPONENT_ADDITION",
    "APPROACH_FALLBACK",
    "APPROACH_FULL_FILE",
    "APPROACH_TAILWIND",
    "APPROACH_TARGETED_NODES",
    "APPROACH_TEXT_BASED",
    "ComponentAdditionSystem",
    "EmergencyCreator",
    "FallbackProcessor",
    "FullFileProcessor",
    "IntegrationError",
    "StrategyError",
    "StrategyExecutor",
    "TailwindProcessor",
    "TargetedNodesProcessor",
    "TextBasedProcessor",
    "validate_tailwind_config",
]
