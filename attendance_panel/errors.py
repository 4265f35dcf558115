class AttendancePanelError(Exception):
    pass


class EmptyExportError(AttendancePanelError, ValueError):
    """The uploaded export had no attendee lines after the header."""


class InvalidFilterError(AttendancePanelError, ValueError):
    pass
