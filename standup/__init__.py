"""
standup-cli Core Module
=======================

Provides the core functionality for standup-cli including:
- Type definitions and data structures
- Configuration management
- Multi-repository commit aggregation
- Commit formatting
- Standup summarization
- Markdown export
- Weekly retrospectives

Version: 1.0.0
"""

__version__ = "1.0.0"

# Type definitions
from .types import (
    DisplayFormat,
    Commit,
    CommitGroup,
    TimeRange,
    AggregationResult,
    ScanProgress,
    StandupSummary,
    ParsedStandup,
    RetroSummary,
)

# Configuration management
from .config import (
    ScanningConfig,
    OllamaConfig,
    JournalConfig,
    StandupConfig,
)

# Commit aggregation
from .aggregator import (
    aggregate,
    CommitAggregator,
)

# Formatting
from .formatter import (
    format_grouped,
    format_flat,
    to_accomplishments,
    strip_conventional_prefix,
)

# Summarization
from .summarizer import (
    StandupSummarizer,
)

# Export
from .exporter import (
    StandupExporter,
)

# Weekly retro
from .retro import (
    parse_standup_markdown,
    WeeklyRetro,
)

__all__ = [
    # Version
    "__version__",
    # Types
    "DisplayFormat",
    "Commit",
    "CommitGroup",
    "TimeRange",
    "AggregationResult",
    "ScanProgress",
    "StandupSummary",
    "ParsedStandup",
    "RetroSummary",
    # Config
    "ScanningConfig",
    "OllamaConfig",
    "JournalConfig",
    "StandupConfig",
    # Aggregation
    "aggregate",
    "CommitAggregator",
    # Formatting
    "format_grouped",
    "format_flat",
    "to_accomplishments",
    "strip_conventional_prefix",
    # Summarizer
    "StandupSummarizer",
    # Exporter
    "StandupExporter",
    # Retro
    "parse_standup_markdown",
    "WeeklyRetro",
]
