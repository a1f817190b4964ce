"""Typed failures surfaced to callers."""


class LearningAggregatorError(Exception):
    """Base class for errors raised by the aggregator core."""


class NotFoundError(LearningAggregatorError):
    """Topic, plan or resource does not exist."""


class EmptyResourceSetError(LearningAggregatorError):
    """Topic has no resources to build a plan from."""


class NoMatchError(LearningAggregatorError):
    """No resources left after applying plan preferences."""


class PersistenceError(LearningAggregatorError):
    """Storage write failed; the in-flight operation is aborted."""
