"""Exception hierarchy for the follower core.

Contract violations from collaborators are fatal and end the session. Missing
or weak signal is never an error: it is reported through the decision regime.
"""

from __future__ import annotations


class FollowerError(Exception):
    """Base class for every error raised by the follower package."""


class ContractViolation(FollowerError):
    """A collaborator broke its interface contract; the session must stop."""


class EmptyFrame(ContractViolation):
    """A frame source delivered an empty image."""


class MalformedDetection(ContractViolation):
    """A detector record does not have the expected number of fields."""


class DegenerateGeometry(FollowerError, ValueError):
    """A bounding box was built from non-finite coordinates."""


class TrackerUnavailable(FollowerError, RuntimeError):
    """The requested tracker implementation cannot be created."""


class TrackerFailure(ContractViolation):
    """The tracker refused to initialize on a box."""


class SourceUnavailable(FollowerError, RuntimeError):
    """A frame source or input image could not be opened."""
