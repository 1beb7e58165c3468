"""Workflow node implementations."""

from .base import BaseNode, NodeClassConfig
from .convert import ConvertNode
from .end import EndNode
from .start import StartNode
from .text import TextNode

__all__ = [
    "BaseNode",
    "NodeClassConfig",
    "StartNode",
    "EndNode",
    "ConvertNode",
    "TextNode",
]
