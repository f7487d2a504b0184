"""
Taxonomie d'erreurs du moteur de workflow.

Les exceptions sont levées à l'intérieur des services et des CRUD, puis
converties en ServiceError au sommet de chaque opération : aucun appelant
ne reçoit d'exception pour une condition métier attendue.
"""

from enum import Enum
from typing import Any, Dict, Optional
import logging

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Nature d'une erreur renvoyée à l'appelant"""
    not_found = "not_found"
    validation_error = "validation_error"
    permission_denied = "permission_denied"
    conflict = "conflict"
    storage_failure = "storage_failure"
    internal_error = "internal_error"


class WorkflowException(Exception):
    """Exception de base du domaine"""

    kind: ErrorKind = ErrorKind.internal_error

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundException(WorkflowException):
    """Entité inexistante ou invisible pour l'appelant"""

    kind = ErrorKind.not_found

    def __init__(self, entity: str, identifier: Any):
        super().__init__(
            f"{entity} with identifier '{identifier}' not found",
            {"entity": entity, "identifier": str(identifier)}
        )


class ValidationException(WorkflowException):
    """Entrée invalide ou transition illégale"""

    kind = ErrorKind.validation_error

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details)


class PermissionException(WorkflowException):
    """Rôle ou affectation insuffisant pour l'action demandée"""

    kind = ErrorKind.permission_denied

    def __init__(self, message: str, action: Optional[str] = None, user_id: Optional[str] = None):
        details = {}
        if action:
            details["action"] = action
        if user_id:
            details["user_id"] = user_id
        super().__init__(message, details)


class ConflictException(WorkflowException):
    """Violation d'unicité ou écriture concurrente détectée"""

    kind = ErrorKind.conflict


class StorageException(WorkflowException):
    """Échec de la couche de persistance"""

    kind = ErrorKind.storage_failure


class ServiceError(BaseModel):
    """Erreur structurée renvoyée par les services"""
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Résultat uniforme d'une opération de service"""
    success: bool
    data: Optional[Any] = None
    error: Optional[ServiceError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ServiceError) -> "ServiceResult":
        return cls(success=False, error=error)


def handle_error(error: Exception, context: str) -> ServiceError:
    """
    Convertit une exception en ServiceError.

    Args:
        error: Exception interceptée
        context: Opération en cours (ex: "interventions:approve")

    Returns:
        Erreur structurée, sans forme propre au client de stockage
    """
    if isinstance(error, WorkflowException):
        if error.kind in (ErrorKind.storage_failure, ErrorKind.internal_error):
            logger.error(f"[{context}] {error.message}")
        else:
            logger.info(f"[{context}] {error.kind.value}: {error.message}")
        return ServiceError(kind=error.kind, message=error.message, details=error.details)

    if isinstance(error, PydanticValidationError):
        first = error.errors()[0] if error.errors() else {}
        message = first.get("msg", str(error))
        logger.info(f"[{context}] validation_error: {message}")
        return ServiceError(
            kind=ErrorKind.validation_error,
            message=message,
            details={"errors": error.errors(include_url=False, include_context=False, include_input=False)}
        )

    logger.exception(f"[{context}] Erreur inattendue: {error}")
    return ServiceError(
        kind=ErrorKind.internal_error,
        message="Unexpected error",
        details={"context": context}
    )


def storage_error(error: Exception, context: str) -> WorkflowException:
    """
    Traduit une erreur du client Supabase/PostgREST.

    Les violations d'unicité (code 23505) deviennent des conflits, tout le
    reste un échec de stockage générique.
    """
    if isinstance(error, WorkflowException):
        return error
    code = getattr(error, "code", None)
    if code == "23505" or "duplicate key" in str(error):
        return ConflictException(
            f"Duplicate entry during {context}",
            {"context": context}
        )
    return StorageException(
        f"Storage failure during {context}",
        {"context": context, "code": code}
    )
