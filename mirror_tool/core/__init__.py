from .exceptions import ErrorKind, MirrorError
from .models import Action, ActionKind, Entry, EntryKind, Plan, RunReport, TreeSnapshot
from .scanner import scan
from .fingerprint import fingerprint
from .reconciler import reconcile
from .executor import execute
from .synchronizer import MirrorSynchronizer

__all__ = [
    'Action', 'ActionKind', 'Entry', 'EntryKind', 'ErrorKind', 'MirrorError',
    'MirrorSynchronizer', 'Plan', 'RunReport', 'TreeSnapshot',
    'execute', 'fingerprint', 'reconcile', 'scan',
]
