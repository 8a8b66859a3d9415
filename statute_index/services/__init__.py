from .statute_search_service import StatuteSearchService

__all__ = ["StatuteSearchService"]
