from .query import SqlQuery

__all__ = ['SqlQuery']
