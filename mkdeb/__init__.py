# mkdeb - build Debian binary packages from a JSON manifest

__version__ = '0.1.0'

from .errors import (MkdebError, ValidationError, UnrecognizedToken,
                     SourceUnavailable, BuildError, InternalError,
                     NotResolved, PipelineStateError)
from .filetype import FileType
from .perm import Perm
from .owner import Owner, OwnerKind
from .digest import HashAlgo, STANDARD_HASHES
from .compression import CompressAlgo
from .file import (FileEntry, EmbeddedBytes, EmbeddedText, SourcePath,
                   ImplicitName, DEFAULT_MTIME)
from .manifest import Manifest, BuildState
from .builder import Builder

__all__ = [
    # Errors
    'MkdebError', 'ValidationError', 'UnrecognizedToken', 'SourceUnavailable',
    'BuildError', 'InternalError', 'NotResolved', 'PipelineStateError',
    # Primitives
    'FileType', 'Perm', 'Owner', 'OwnerKind', 'HashAlgo', 'STANDARD_HASHES',
    'CompressAlgo',
    # Model
    'FileEntry', 'EmbeddedBytes', 'EmbeddedText', 'SourcePath', 'ImplicitName',
    'DEFAULT_MTIME', 'Manifest', 'BuildState',
    # The big boy
    'Builder',
]
