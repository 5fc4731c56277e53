from .facade import QueryFacade

__all__ = ["QueryFacade"]
