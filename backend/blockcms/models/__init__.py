from .audit_log import AuditLog
from .collection import Collection
from .content import Content
from .content_version import ContentVersion
from .custom_element import CustomElement
from .filter_view import FilterView
