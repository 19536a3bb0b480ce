"""Builders package for formschema-mcp.

This package contains builder classes responsible for constructing response models
from the schema engine's data classes.

Main Components:
- PublishFormResultBuilder: Builds PublishFormResult objects
- ModelElementItemBuilder: Builds ModelElementItem objects
- BackingTableItemBuilder: Builds BackingTableItem objects
"""

from .response_builders import (
    BackingTableItemBuilder,
    ModelElementItemBuilder,
    PublishFormResultBuilder,
)

__all__ = [
    "BackingTableItemBuilder",
    "ModelElementItemBuilder",
    "PublishFormResultBuilder",
]
