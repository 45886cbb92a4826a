from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum, ForeignKeyConstraint, Index, Integer, Numeric, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

class Base(DeclarativeBase):
    pass


class Admins(Base):
    __tablename__ = 'admins'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='admins_pkey'),
        UniqueConstraint('external_id', name='admins_external_id_key'),
        UniqueConstraint('email', name='admins_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    email: Mapped[str] = mapped_column(String(255))
    external_id: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text('false'))
    super_admin: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text('false'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=datetime.datetime.now)

    class_sessions: Mapped[list['ClassSessions']] = relationship('ClassSessions', back_populates='instructor')
    checked_in_logs: Mapped[list['AttendanceLogs']] = relationship('AttendanceLogs', back_populates='checked_in_by')
    created_payments: Mapped[list['Payments']] = relationship('Payments', back_populates='created_by')


class Clients(Base):
    __tablename__ = 'clients'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='clients_pkey'),
        UniqueConstraint('username', name='clients_username_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    username: Mapped[str] = mapped_column(String(100))
    password: Mapped[str] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text('false'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=datetime.datetime.now)

    attendance_logs: Mapped[list['AttendanceLogs']] = relationship('AttendanceLogs', back_populates='client')
    group_memberships: Mapped[list['ClientGroupMemberships']] = relationship('ClientGroupMemberships', back_populates='client')
    payments: Mapped[list['Payments']] = relationship('Payments', back_populates='client')


class ClassSessions(Base):
    __tablename__ = 'class_sessions'
    __table_args__ = (
        CheckConstraint('capacity > 0', name='class_sessions_capacity_check'),
        CheckConstraint('start_time < end_time', name='class_sessions_time_order_check'),
        ForeignKeyConstraint(['instructor_id'], ['admins.id'], name='class_sessions_instructor_id_fkey'),
        PrimaryKeyConstraint('id', name='class_sessions_pkey'),
        Index('idx_class_sessions_date', 'date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(100))
    capacity: Mapped[int] = mapped_column(Integer)
    date: Mapped[datetime.date] = mapped_column(Date)
    start_time: Mapped[datetime.datetime] = mapped_column(DateTime)
    end_time: Mapped[datetime.datetime] = mapped_column(DateTime)
    instructor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    description: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(100))
    is_cancelled: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text('false'))

    instructor: Mapped['Admins'] = relationship('Admins', back_populates='class_sessions')
    attendance_logs: Mapped[list['AttendanceLogs']] = relationship(
        'AttendanceLogs',
        back_populates='session',
        cascade='all, delete-orphan'
    )


class AttendanceLogs(Base):
    __tablename__ = 'attendance_logs'
    __table_args__ = (
        ForeignKeyConstraint(['session_id'], ['class_sessions.id'], ondelete='CASCADE', name='attendance_logs_session_id_fkey'),
        ForeignKeyConstraint(['client_id'], ['clients.id'], name='attendance_logs_client_id_fkey'),
        ForeignKeyConstraint(['checked_in_by_id'], ['admins.id'], ondelete='SET NULL', name='attendance_logs_checked_in_by_id_fkey'),
        PrimaryKeyConstraint('id', name='attendance_logs_pkey'),
        Index('idx_attendance_logs_session', 'session_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    check_in_time: Mapped[datetime.datetime] = mapped_column(DateTime, default=datetime.datetime.now)
    checked_in_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)

    session: Mapped['ClassSessions'] = relationship('ClassSessions', back_populates='attendance_logs')
    client: Mapped['Clients'] = relationship('Clients', back_populates='attendance_logs')
    checked_in_by: Mapped[Optional['Admins']] = relationship('Admins', back_populates='checked_in_logs')


class ClientGroups(Base):
    __tablename__ = 'client_groups'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='client_groups_pkey'),
        UniqueConstraint('name', name='client_groups_name_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50))
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=datetime.datetime.now)

    memberships: Mapped[list['ClientGroupMemberships']] = relationship(
        'ClientGroupMemberships',
        back_populates='group',
        cascade='all, delete-orphan'
    )


class ClientGroupMemberships(Base):
    __tablename__ = 'client_group_memberships'
    __table_args__ = (
        ForeignKeyConstraint(['client_group_id'], ['client_groups.id'], ondelete='CASCADE', name='client_group_memberships_group_id_fkey'),
        ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE', name='client_group_memberships_client_id_fkey'),
        PrimaryKeyConstraint('id', name='client_group_memberships_pkey'),
        UniqueConstraint('client_group_id', 'client_id', name='client_group_memberships_group_client_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_group_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid)

    group: Mapped['ClientGroups'] = relationship('ClientGroups', back_populates='memberships')
    client: Mapped['Clients'] = relationship('Clients', back_populates='group_memberships')


class Payments(Base):
    __tablename__ = 'payments'
    __table_args__ = (
        CheckConstraint('amount > 0', name='payments_amount_check'),
        ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE', name='payments_client_id_fkey'),
        ForeignKeyConstraint(['created_by_id'], ['admins.id'], name='payments_created_by_id_fkey'),
        PrimaryKeyConstraint('id', name='payments_pkey'),
        Index('idx_payments_client_date', 'client_id', 'payment_date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    status: Mapped[str] = mapped_column(Enum('paid', 'pending', 'failed', name='payment_status_enum'), default='paid')
    payment_date: Mapped[datetime.datetime] = mapped_column(DateTime, default=datetime.datetime.now)
    valid_until: Mapped[datetime.datetime] = mapped_column(DateTime)
    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=datetime.datetime.now)

    client: Mapped['Clients'] = relationship('Clients', back_populates='payments')
    created_by: Mapped['Admins'] = relationship('Admins', back_populates='created_payments')
