from .orchestrator import QueryOrchestrator, QueryMetrics
from .remote import GraphDataProvider, HttpGraphDataProvider

__all__ = ['QueryOrchestrator', 'QueryMetrics', 'GraphDataProvider', 'HttpGraphDataProvider']
