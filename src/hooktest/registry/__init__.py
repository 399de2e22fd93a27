"""Declaration registry and macro resolution."""
from .macros import ANONYMOUS, MacroResolver
from .registry import DeclarationRegistry

__all__ = [
    "ANONYMOUS",
    "DeclarationRegistry",
    "MacroResolver",
]
