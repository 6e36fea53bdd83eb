"""
Ошибки предметной области.

Сервисы бросают эти исключения до любых изменений в БД, роуты их не ловят:
приложение переводит их в HTTP-ответ единым обработчиком (см. main.py).
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Базовая ошибка предметной области."""

    status_code = 400
    code = "domain_error"
    default_message = "Ошибка обработки запроса"

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"detail": self.message, "code": self.code}
        for key, value in self.context.items():
            data[key] = value if isinstance(value, (int, float, bool)) or value is None else str(value)
        return data


# --- Validation: некорректный ввод, безопасно повторить после исправления ---


class ValidationError(DomainError):
    status_code = 400
    code = "validation_error"
    default_message = "Некорректные данные"


class InvalidInterval(ValidationError):
    code = "invalid_interval"
    default_message = "Интервал обслуживания должен быть не меньше 1 дня"


class IneligibleEquipmentType(ValidationError):
    code = "ineligible_equipment_type"
    default_message = "Термообслуживание доступно только для PC и CONSOLE"


class EvidenceRequired(ValidationError):
    code = "evidence_required"
    default_message = "Для завершения задачи нужна хотя бы одна фотография"


class ReasonRequired(ValidationError):
    code = "reason_required"
    default_message = "Укажите причину"


class NotesRequired(ValidationError):
    code = "notes_required"
    default_message = "Опишите решение проблемы"


# --- Conflict: недопустимый переход или конфликт состояния ---


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"
    default_message = "Конфликт состояния"


class InvalidTransition(ConflictError):
    code = "invalid_transition"

    def __init__(self, current: str, attempted: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Недопустимый переход: {current} -> {attempted}",
            current=current,
            attempted=attempted,
        )
        self.current = current
        self.attempted = attempted


class NoOpMove(ConflictError):
    code = "noop_move"
    default_message = "Оборудование уже находится в этом месте"


class EquipmentInactive(ConflictError):
    code = "equipment_inactive"
    default_message = "Оборудование списано (неактивно)"


class SlotOccupied(ConflictError):
    code = "slot_occupied"
    default_message = "На рабочем месте уже есть оборудование этого типа"


class ZoneNotEmpty(ConflictError):
    code = "zone_not_empty"
    default_message = "Нельзя удалить зону с рабочими местами. Сначала перенесите или удалите их."


class WorkstationNotEmpty(ConflictError):
    code = "workstation_not_empty"
    default_message = "Нельзя удалить рабочее место с оборудованием. Сначала переместите оборудование."


# --- Not found ---


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"
    default_message = "Объект не найден"


class TargetNotFound(NotFoundError):
    code = "target_not_found"
    default_message = "Целевое рабочее место не найдено"


# --- Dependency: сбой внешнего источника (справочники, конфигурация) ---


class DependencyError(DomainError):
    status_code = 502
    code = "dependency_error"
    default_message = "Внешний сервис недоступен"


# --- Permission: действие доступно только владельцу записи ---


class PermissionDenied(DomainError):
    status_code = 403
    code = "permission_denied"
    default_message = "Недостаточно прав доступа"
