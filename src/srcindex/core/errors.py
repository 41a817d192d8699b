"""Exception types for the file indexing pipeline."""


class MessageError(Exception):
    """
    Fatal error carrying a clean, user-facing message.

    Raised for conditions that must abort the whole indexing run. Entry
    points print the message as-is instead of a stack trace.
    """

    pass


class DuplicatePathError(MessageError):
    """A second file resolved to a project-relative path already indexed."""

    def __init__(self, project_relative_path: str):
        self.project_relative_path = project_relative_path
        super().__init__(
            f"File {project_relative_path} can't be indexed twice. Please check that "
            "inclusion/exclusion patterns produce disjoint sets for main and test files"
        )


class MetadataError(MessageError):
    """Eager metadata computation failed for an indexed file."""

    def __init__(self, project_relative_path: str, cause: BaseException):
        self.project_relative_path = project_relative_path
        super().__init__(
            f"Failed to compute metadata of file {project_relative_path}: {cause}"
        )


class PathResolutionError(MessageError):
    """The real location of a candidate path could not be determined."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        super().__init__(f"Unable to resolve path of file {path}: {cause}")


class IndexingInternalError(RuntimeError):
    """Unexpected failure while indexing (a bug, not a user error)."""

    pass
