"""Context-aware assistant core: sensor context, multi-model reasoning and autonomous tasks."""

__version__ = "0.1.0"
