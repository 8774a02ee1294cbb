"""
Exception types raised by the highlighter components.
"""


class VisitedLinksError(Exception):
    """Base class for highlighter errors."""


class HistoryQueryError(VisitedLinksError):
    """A history store could not answer a query."""


class ChannelError(VisitedLinksError):
    """The recipient of a message is not present or not listening."""


class ContextInvalidatedError(ChannelError):
    """The page's host context is gone; no further messages can be sent."""


class UnknownMessageError(VisitedLinksError):
    """A router received a message kind it has no handler for."""
