"""
Engine error taxonomy.

Startup problems (configuration, dataset) raise and stop the process.
Runtime problems on the tracking path are logged and absorbed by the
engine; these types exist so callers that ask a direct question (where
am I, what is nearest) get a precise answer when there is none.
"""


class CanyonError(Exception):
    """Base class for engine errors"""
    pass


class ConfigError(CanyonError, ValueError):
    """Invalid or unreadable configuration file"""
    pass


class DatasetError(CanyonError, ValueError):
    """Bundled dataset is malformed or inconsistent"""
    pass


class StorageError(CanyonError):
    """Key-value backend failed to read or write"""
    pass


class PersistenceError(CanyonError):
    """Persisted state could not be saved or loaded"""
    pass


class VersionMismatchError(PersistenceError):
    """Stored dataset version tag did not read back as written"""
    pass


class PermissionDeniedError(CanyonError):
    """Location permission refused or revoked"""
    pass


class NoFixError(CanyonError):
    """No position available yet"""
    pass


class EmptyLandmarkSetError(CanyonError):
    """Dataset has no landmark points"""
    pass
