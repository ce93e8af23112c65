"""
Error taxonomy for DamageTrack.

Services raise these directly (they are HTTPExceptions, so FastAPI renders
them); batch operations catch them per item and turn them into skipped rows.
"""
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    def __init__(self, entity: str = "Record"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


class InvalidTransitionError(HTTPException):
    def __init__(self, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status transition from {current_status} to {target_status}",
        )


class ConflictError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ReferenceExhaustedError(HTTPException):
    """Reference number kept colliding; not a client mistake."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not allocate a reference number. Please retry.",
        )


class BatchRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RowValidationError(HTTPException):
    """A single CSV row failed schema or business-rule checks."""

    def __init__(self, detail: str):
        super().__init__(status_code=422, detail=detail)
