"""
Import error hierarchy; all messages are meant to be shown to the user as-is
"""


class CourseImportError(ValueError):
    """Base class for failures while importing a course spreadsheet"""


class WorkbookParseError(CourseImportError):
    """The uploaded bytes are not a readable workbook"""


class StructureError(CourseImportError):
    """The worksheet does not follow the expected layout"""


class CourseInfoError(CourseImportError):
    """Group, level or mode could not be determined"""


class ValidationFailed(CourseImportError):
    """Pre-flight validation reported errors"""

    def __init__(self, result):
        self.result = result
        super().__init__(f"Validation failed: {', '.join(result.errors)}")


class SessionIntegrityError(CourseImportError):
    """A session violates an invariant while being processed"""


class MergeNoOpError(CourseImportError):
    """Re-import of an existing course changed nothing"""


class RecordNotFoundError(CourseImportError):
    """A record that must exist is missing from the store"""
