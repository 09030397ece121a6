# mkdeb.errors - exception types
#
# There are two kinds of failure here. MkdebError and friends are problems
# with the input (bad manifest, missing files, I/O trouble) and get reported
# to the user. InternalError means somebody drove the pipeline out of order
# or fed it a value that can't exist; those should blow up loudly.

class MkdebError(Exception):
    '''Base class for user-facing errors.'''
    pass

class ValidationError(MkdebError, ValueError):
    '''
    A manifest value failed validation.
    `field` is the path to the offending value, like "files[3].link".
    '''
    def __init__(self, field, msg):
        self.field = field
        self.msg = msg
        super().__init__(field, msg)

    def __str__(self):
        if not self.field:
            return self.msg
        return f"{self.field}: {self.msg}"

    def within(self, prefix):
        '''Return a copy of this error with `prefix` prepended to the field.'''
        field = f"{prefix}.{self.field}" if self.field else prefix
        err = self.__class__.__new__(self.__class__)
        err.__dict__.update(self.__dict__)
        err.field = field
        err.args = (field, self.msg)
        return err

class UnrecognizedToken(ValidationError):
    def __init__(self, field, kind, token):
        self.kind = kind
        self.token = token
        super().__init__(field, f"failed to parse {token!r} as {kind}")

class SourceUnavailable(MkdebError):
    '''Content for a regular file couldn't be found under the content root.'''
    def __init__(self, path, reason, field=None):
        self.path = path
        self.reason = reason
        self.field = field
        super().__init__(path, reason, field)

    def __str__(self):
        msg = f"failed to stat {str(self.path)!r}: {self.reason}"
        return f"{self.field}: {msg}" if self.field else msg

class BuildError(MkdebError):
    '''An I/O failure during one step of the build.'''
    def __init__(self, step, reason):
        self.step = step
        self.reason = reason
        super().__init__(step, reason)

    def __str__(self):
        return f"{self.step}: {self.reason}"

class InternalError(AssertionError):
    '''The pipeline was used out of contract. Not the user's fault.'''
    pass

class NotResolved(InternalError):
    def __init__(self, what="manifest"):
        super().__init__(f"{what}: must call resolve() first")

class PipelineStateError(InternalError):
    def __init__(self, step, expected, actual):
        self.step = step
        self.expected = expected
        self.actual = actual
        super().__init__(f"{step}: expected state {expected.name}, "
                         f"got {actual.name}")
