"""
Модели модуля Fleet (оборудование клуба)
"""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from clubops.core.database import Base

# Ответственный "общий пул": любой свободный сотрудник (в отличие от "никто")
SHARED_POOL = "shared_pool"

EQUIPMENT_TYPES = (
    "PC",
    "MONITOR",
    "KEYBOARD",
    "MOUSE",
    "HEADSET",
    "CONSOLE",
    "TV",
    "VR_HEADSET",
    "MOUSEPAD",
    "CHAIR",
    "GAMEPAD",
    "CLEANING",
    "OTHER",
)
# Термопаста/термообслуживание есть только у этих типов
THERMAL_ELIGIBLE_TYPES = ("PC", "CONSOLE")

TASK_TYPES = ("CLEANING", "MAINTENANCE", "REPAIR", "CHECK")
RECURRING_TASK_TYPES = ("CLEANING", "MAINTENANCE")

TASK_STATUSES = ("PENDING", "IN_PROGRESS", "COMPLETED", "VERIFIED", "SKIPPED")
OPEN_TASK_STATUSES = ("PENDING", "IN_PROGRESS")
VERIFICATION_STATUSES = ("PENDING", "APPROVED", "REJECTED")

ISSUE_SEVERITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
ISSUE_STATUSES = ("OPEN", "IN_PROGRESS", "RESOLVED", "CLOSED")
ACTIVE_ISSUE_STATUSES = ("OPEN", "IN_PROGRESS")

# Ключ цикла для оборудования, которое ни разу не обслуживалось
INITIAL_CYCLE_KEY = "initial"


class Zone(Base):
    """Зона клуба (группа рабочих мест)"""

    __tablename__ = "zones"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), unique=True, nullable=False)
    responsible_id = Column(String(64), nullable=True)  # id сотрудника | shared_pool | NULL
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    workstations = relationship("Workstation", back_populates="zone")


class Workstation(Base):
    """Рабочее место (игровое место), на котором стоит оборудование"""

    __tablename__ = "workstations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), unique=True, nullable=False)
    zone_id = Column(
        Uuid, ForeignKey("zones.id", ondelete="SET NULL"), nullable=True
    )
    # id сотрудника | shared_pool | NULL ("не обслуживается")
    responsible_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    zone = relationship("Zone", back_populates="workstations")
    equipment_items = relationship(
        "Equipment", foreign_keys="Equipment.workstation_id", back_populates="workstation"
    )

    @property
    def zone_name(self):
        return self.zone.name if self.zone else None


class Equipment(Base):
    """Оборудование"""

    __tablename__ = "equipment"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # PC, MONITOR, KEYBOARD, ...
    brand = Column(String(255), nullable=True)
    model = Column(String(255), nullable=True)
    serial_number = Column(String(255), nullable=True)
    inventory_number = Column(String(255), unique=True, nullable=True)
    warranty_expires = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Размещение: NULL = склад
    workstation_id = Column(
        Uuid, ForeignKey("workstations.id", ondelete="SET NULL"), nullable=True
    )

    # Регулярная чистка
    maintenance_enabled = Column(Boolean, default=True, nullable=False)
    cleaning_interval_days = Column(Integer, default=30, nullable=False)
    last_cleaned_at = Column(DateTime(timezone=True), nullable=True)

    # Термообслуживание (только PC/CONSOLE)
    thermal_last_changed_at = Column(DateTime(timezone=True), nullable=True)
    thermal_interval_days = Column(Integer, nullable=True)
    thermal_material = Column(String(255), nullable=True)
    thermal_note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    workstation = relationship(
        "Workstation", foreign_keys=[workstation_id], back_populates="equipment_items"
    )

    @property
    def workstation_name(self):
        return self.workstation.name if self.workstation else None

    @property
    def zone_name(self):
        return self.workstation.zone_name if self.workstation else None


class EquipmentInstruction(Base):
    """Инструкция по обслуживанию для типа оборудования"""

    __tablename__ = "equipment_instructions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    equipment_type = Column(String(50), unique=True, nullable=False)
    instructions = Column(Text, nullable=True)
    updated_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class EquipmentMove(Base):
    """История перемещений оборудования"""

    __tablename__ = "equipment_moves"

    id = Column(Uuid, primary_key=True, default=uuid4)
    equipment_id = Column(
        Uuid,
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_workstation_id = Column(
        Uuid, ForeignKey("workstations.id", ondelete="SET NULL"), nullable=True
    )
    to_workstation_id = Column(
        Uuid, ForeignKey("workstations.id", ondelete="SET NULL"), nullable=True
    )
    # Снимок названий мест на момент перемещения
    from_location = Column(String(512), nullable=True)
    to_location = Column(String(512), nullable=True)
    reason = Column(Text, nullable=True)
    moved_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    equipment = relationship("Equipment", foreign_keys=[equipment_id])

    @property
    def equipment_name(self):
        return self.equipment.name if self.equipment else None


class MaintenanceTask(Base):
    """Задача обслуживания оборудования (одна на цикл обслуживания)"""

    __tablename__ = "maintenance_tasks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    equipment_id = Column(Uuid, ForeignKey("equipment.id"), nullable=False)
    task_type = Column(String(20), default="CLEANING", nullable=False)  # CLEANING, MAINTENANCE, REPAIR, CHECK
    cycle_key = Column(String(64), nullable=False)  # дата последнего обслуживания, "initial" или "adhoc-..."
    due_date = Column(Date, nullable=False)  # локальная дата клуба
    status = Column(
        String(20), default="PENDING", nullable=False
    )  # PENDING, IN_PROGRESS, COMPLETED, VERIFIED, SKIPPED
    assignee_id = Column(String(64), nullable=True)  # id сотрудника | shared_pool | NULL

    # Снимок рабочего места на момент создания (обновляется только при перемещении)
    workstation_id = Column(
        Uuid, ForeignKey("workstations.id", ondelete="SET NULL"), nullable=True
    )
    workstation_name = Column(String(255), nullable=True)
    zone_name = Column(String(255), nullable=True)

    # Отчёт о выполнении (текущая попытка)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by = Column(String(64), nullable=True)
    photos = Column(JSON, default=list, nullable=False)
    notes = Column(Text, nullable=True)

    # Проверка
    verification_status = Column(String(20), nullable=True)  # PENDING, APPROVED, REJECTED
    verified_by = Column(String(64), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_note = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    rework_count = Column(Integer, default=0, nullable=False)

    # Инцидент, открытый при выполнении (без FK: инциденты ссылаются на задачи)
    linked_issue_id = Column(Uuid, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    equipment = relationship("Equipment", foreign_keys=[equipment_id])
    verifications = relationship(
        "MaintenanceVerification",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="MaintenanceVerification.attempt",
    )
    history = relationship(
        "MaintenanceTaskHistory",
        back_populates="task",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint(
            "equipment_id", "task_type", "cycle_key", name="unique_task_cycle"
        ),
    )

    @property
    def equipment_name(self):
        return self.equipment.name if self.equipment else None

    @property
    def equipment_type(self):
        return self.equipment.type if self.equipment else None


class MaintenanceVerification(Base):
    """
    Отчёт о выполнении задачи и решение проверяющего.

    Одна запись на каждую отправку отчёта: отклонённые отчёты остаются
    в истории вместе с причиной отклонения.
    """

    __tablename__ = "maintenance_verifications"

    id = Column(Uuid, primary_key=True, default=uuid4)
    task_id = Column(
        Uuid,
        ForeignKey("maintenance_tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    attempt = Column(Integer, default=1, nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)  # PENDING, APPROVED, REJECTED

    # Отправка
    photos = Column(JSON, default=list, nullable=False)
    notes = Column(Text, nullable=True)
    submitted_by = Column(String(64), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    idempotency_key = Column(String(128), nullable=True)
    # Дата последнего обслуживания до этой отправки (для отката при отклонении)
    previous_serviced_at = Column(DateTime(timezone=True), nullable=True)

    # Решение
    reviewer_id = Column(String(64), nullable=True)
    review_note = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    task = relationship("MaintenanceTask", back_populates="verifications")

    __table_args__ = (
        UniqueConstraint("task_id", "idempotency_key", name="unique_task_submission"),
    )


class MaintenanceTaskHistory(Base):
    """История изменений задачи обслуживания"""

    __tablename__ = "maintenance_task_history"

    id = Column(Uuid, primary_key=True, default=uuid4)
    task_id = Column(
        Uuid,
        ForeignKey("maintenance_tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    changed_by_id = Column(String(64), nullable=True)  # NULL: система
    field = Column(String(50), nullable=False)  # Название изменённого поля
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    task = relationship("MaintenanceTask", back_populates="history")


class Issue(Base):
    """Инцидент (неисправность) по оборудованию"""

    __tablename__ = "issues"

    id = Column(Uuid, primary_key=True, default=uuid4)
    equipment_id = Column(Uuid, ForeignKey("equipment.id"), nullable=False)

    # Снимок размещения на момент создания
    workstation_id = Column(
        Uuid, ForeignKey("workstations.id", ondelete="SET NULL"), nullable=True
    )
    workstation_name = Column(String(255), nullable=True)
    zone_name = Column(String(255), nullable=True)

    reported_by = Column(String(64), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(String(20), default="MEDIUM", nullable=False)  # LOW, MEDIUM, HIGH, CRITICAL
    status = Column(String(20), default="OPEN", nullable=False)  # OPEN, IN_PROGRESS, RESOLVED, CLOSED
    assignee_id = Column(String(64), nullable=True)

    resolution_notes = Column(Text, nullable=True)
    resolution_photos = Column(JSON, default=list, nullable=False)
    resolved_by = Column(String(64), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    # Задача обслуживания, при выполнении которой открыт инцидент
    linked_task_id = Column(
        Uuid, ForeignKey("maintenance_tasks.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    equipment = relationship("Equipment", foreign_keys=[equipment_id])
    comments = relationship(
        "IssueComment",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="IssueComment.created_at",
    )

    @property
    def equipment_name(self):
        return self.equipment.name if self.equipment else None


class IssueComment(Base):
    """Комментарий к инциденту (в том числе системные записи аудита)"""

    __tablename__ = "issue_comments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    issue_id = Column(
        Uuid,
        ForeignKey("issues.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id = Column(String(64), nullable=True)
    content = Column(Text, nullable=False)
    is_system_message = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    issue = relationship("Issue", back_populates="comments")
