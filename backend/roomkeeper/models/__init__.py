from .resources import Resource
from .sessions import UsageSession
from .audit import AuditEvent
from .catalog import Product
from .settings import AppSetting
from .auth import AdminToken

__all__ = [
    'Resource', 'UsageSession', 'AuditEvent', 'Product', 'AppSetting', 'AdminToken',
]
