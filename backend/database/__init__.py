from .connection import get_db, get_engine, get_session_factory, init_db, dispose_engine, Base

from .transaction_models import TransactionDB, TransactionType

__all__ = [
    'get_db', 'get_engine', 'get_session_factory', 'init_db', 'dispose_engine', 'Base',
    'TransactionDB', 'TransactionType',
]
