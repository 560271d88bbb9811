"""Domain exceptions raised by the assignment engine."""


class AssignmentError(Exception):
    """Base class for every error the assignment engine surfaces."""


class NotFoundError(AssignmentError):
    entity = "Entity"

    def __init__(self, entity_id: int):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class CaseNotFound(NotFoundError):
    entity = "Case"


class HandlerNotFound(NotFoundError):
    entity = "Handler"


class RuleNotFound(NotFoundError):
    entity = "Assignment rule"


class AssignmentConflict(AssignmentError):
    """A concurrent writer changed the case's assignment first. Safe to retry."""


class HandlerAtCapacity(AssignmentConflict):
    """The handler's last free slot was taken between selection and write."""

    def __init__(self, handler_id: int):
        self.handler_id = handler_id
        super().__init__(f"Handler {handler_id} reached capacity")


class InvalidRuleDefinition(AssignmentError, ValueError):
    pass


class InvalidHandlerDefinition(AssignmentError, ValueError):
    pass
