from .engine import GraphStateEngine
from .interaction import InteractionState

__all__ = ['GraphStateEngine', 'InteractionState']
