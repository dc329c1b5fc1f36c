from .auth import User, SessionToken
from .catalog import Group, Product, CosmeticDetails, SupplementDetails, FieldSuggestion
from .security import SecurityEvent

__all__ = [
    'User', 'SessionToken',
    'Group', 'Product', 'CosmeticDetails', 'SupplementDetails', 'FieldSuggestion',
    'SecurityEvent',
]
