from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()
metadata = Base.metadata

DONATION_TYPES = ("sang_total", "plaquetes", "plasma", "medul·la")
BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")

APPOINTMENT_STATUSES = ("scheduled", "confirmed", "completed", "cancelled", "no-show")
# Statuses that occupy a place in a slot
ACTIVE_APPOINTMENT_STATUSES = ("scheduled", "confirmed")
TERMINAL_APPOINTMENT_STATUSES = ("completed", "cancelled", "no-show")

REWARD_STATUSES = ("available", "low_stock", "out_of_stock", "coming_soon")
REDEEMABLE_REWARD_STATUSES = ("available", "low_stock")
REWARD_CATEGORIES = ("festivals", "discounts", "exclusive", "experiences")

TRANSACTION_STATUSES = ("pending", "confirmed", "redeemed", "expired", "cancelled")
CANCELLABLE_TRANSACTION_STATUSES = ("pending", "confirmed")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("uq_user_email", "email", unique=True),
        CheckConstraint("tokens >= 0", name="ck_user_tokens_non_negative"),
        {"comment": "Donors. tokens is only mutated by the reward ledger."},
    )

    id = mapped_column(Integer, primary_key=True)
    email = mapped_column(String(255), nullable=False)
    password_hash = mapped_column(String(72), nullable=False)
    name = mapped_column(String(120), nullable=False)
    phone = mapped_column(String(25), nullable=False)
    birthdate = mapped_column(Date, nullable=False)
    gender = mapped_column(
        Enum("home", "dona", "altre", "no-especificar", name="user_gender"),
        nullable=False,
    )
    blood_type = mapped_column(Enum(*BLOOD_TYPES, name="blood_type"), nullable=False)
    has_donated_before = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("0")
    )
    tokens = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    donation_count = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    lives_saved = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    avatar = mapped_column(String(255))

    appointment_reminders = mapped_column(Boolean, nullable=False, default=True)
    campaign_updates = mapped_column(Boolean, nullable=False, default=True)
    reward_alerts = mapped_column(Boolean, nullable=False, default=True)
    system_notifications = mapped_column(Boolean, nullable=False, default=True)

    share_impact = mapped_column(Boolean, nullable=False, default=True)
    show_in_leaderboard = mapped_column(Boolean, nullable=False, default=True)
    data_collection = mapped_column(Boolean, nullable=False, default=True)

    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", uselist=True, back_populates="user"
    )
    donations: Mapped[List["Donation"]] = relationship(
        "Donation", uselist=True, back_populates="user"
    )
    reward_transactions: Mapped[List["RewardTransaction"]] = relationship(
        "RewardTransaction", uselist=True, back_populates="user"
    )


class DonationCenter(Base):
    __tablename__ = "donation_center"
    __table_args__ = (
        Index("idx_center_city", "city"),
        Index("idx_center_coords", "latitude", "longitude"),
        CheckConstraint("capacity >= 1", name="ck_center_capacity_positive"),
    )

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(120), nullable=False)
    address = mapped_column(String(255), nullable=False)
    city = mapped_column(String(100), nullable=False)
    postal_code = mapped_column(String(10), nullable=False)
    latitude = mapped_column(Float, nullable=False)
    longitude = mapped_column(Float, nullable=False)
    type = mapped_column(Enum("fix", "mobile", name="center_type"), nullable=False)
    open_now = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("1")
    )
    phone = mapped_column(String(25), nullable=False)
    facilities = mapped_column(JSON, default=list)
    image_url = mapped_column(String(255))
    capacity = mapped_column(
        Integer,
        nullable=False,
        default=4,
        server_default=text("4"),
        comment="Max appointments per date+time slot",
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    schedule: Mapped[List["CenterSchedule"]] = relationship(
        "CenterSchedule",
        uselist=True,
        back_populates="center",
        order_by="CenterSchedule.day_of_week",
    )
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", uselist=True, back_populates="center"
    )


class CenterSchedule(Base):
    __tablename__ = "center_schedule"
    __table_args__ = (
        ForeignKeyConstraint(
            ["center_id"], ["donation_center.id"], ondelete="CASCADE", name="fk_cs_center"
        ),
        Index("uq_center_day", "center_id", "day_of_week", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    center_id = mapped_column(Integer, nullable=False)
    day_of_week = mapped_column(Integer, nullable=False, comment="0=Sunday .. 6=Saturday")
    open_time = mapped_column(String(5), nullable=False)
    close_time = mapped_column(String(5), nullable=False)
    is_closed = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("0")
    )

    center: Mapped["DonationCenter"] = relationship(
        "DonationCenter", back_populates="schedule"
    )


class Appointment(Base):
    __tablename__ = "appointment"
    __table_args__ = (
        ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_ap_user"),
        ForeignKeyConstraint(
            ["center_id"], ["donation_center.id"], name="fk_ap_center"
        ),
        Index("idx_ap_slot", "center_id", "date", "time"),
        Index("idx_ap_user_date", "user_id", "date"),
        Index("uq_ap_confirmation_code", "confirmation_code", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    center_id = mapped_column(Integer, nullable=False)
    donation_type = mapped_column(
        Enum(*DONATION_TYPES, name="donation_type"), nullable=False
    )
    date = mapped_column(Date, nullable=False)
    time = mapped_column(String(5), nullable=False, comment="HH:MM")
    status = mapped_column(
        Enum(*APPOINTMENT_STATUSES, name="appointment_status"),
        nullable=False,
        default="scheduled",
    )
    confirmation_code = mapped_column(String(32))
    notes = mapped_column(String(500))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    user: Mapped["User"] = relationship("User", back_populates="appointments")
    center: Mapped["DonationCenter"] = relationship(
        "DonationCenter", back_populates="appointments"
    )


class AppointmentSlot(Base):
    __tablename__ = "appointment_slot"
    __table_args__ = (
        ForeignKeyConstraint(
            ["center_id"], ["donation_center.id"], ondelete="CASCADE", name="fk_as_center"
        ),
        Index("uq_slot", "center_id", "date", "time", unique=True),
        CheckConstraint("booked >= 0", name="ck_slot_booked_non_negative"),
        {"comment": "Per-slot counter of scheduled/confirmed appointments."},
    )

    id = mapped_column(Integer, primary_key=True)
    center_id = mapped_column(Integer, nullable=False)
    date = mapped_column(Date, nullable=False)
    time = mapped_column(String(5), nullable=False)
    booked = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))


class Donation(Base):
    __tablename__ = "donation"
    __table_args__ = (
        ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_dn_user"),
        ForeignKeyConstraint(
            ["appointment_id"],
            ["appointment.id"],
            ondelete="SET NULL",
            name="fk_dn_appointment",
        ),
        ForeignKeyConstraint(
            ["center_id"], ["donation_center.id"], name="fk_dn_center"
        ),
        Index("idx_dn_user_date", "user_id", "date"),
        {"comment": "Append-only donation log."},
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    appointment_id = mapped_column(Integer)
    donation_type = mapped_column(
        Enum(*DONATION_TYPES, name="donation_type"), nullable=False
    )
    date = mapped_column(Date, nullable=False)
    center_id = mapped_column(Integer, nullable=False)
    center_name = mapped_column(String(120), nullable=False)
    tokens_earned = mapped_column(Integer, nullable=False, default=0)
    volume = mapped_column(Integer, comment="ml for blood/plasma")
    notes = mapped_column(String(500))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    user: Mapped["User"] = relationship("User", back_populates="donations")
    center: Mapped["DonationCenter"] = relationship("DonationCenter")


class Reward(Base):
    __tablename__ = "reward"
    __table_args__ = (
        Index("idx_reward_category_status", "category", "status"),
        Index("idx_reward_tokens", "tokens_required"),
        CheckConstraint("tokens_required >= 1", name="ck_reward_price_positive"),
        CheckConstraint(
            "stock_available IS NULL OR stock_available >= 0",
            name="ck_reward_stock_non_negative",
        ),
    )

    id = mapped_column(Integer, primary_key=True)
    title = mapped_column(String(150), nullable=False)
    description = mapped_column(Text, nullable=False)
    short_description = mapped_column(String(200), nullable=False)
    long_description = mapped_column(Text, nullable=False)
    image_url = mapped_column(String(255), nullable=False)
    category = mapped_column(
        Enum(*REWARD_CATEGORIES, name="reward_category"), nullable=False
    )
    tokens_required = mapped_column(Integer, nullable=False)
    status = mapped_column(
        Enum(*REWARD_STATUSES, name="reward_status"),
        nullable=False,
        default="available",
    )
    stock_available = mapped_column(Integer, comment="NULL means unlimited")
    total_stock = mapped_column(Integer)
    valid_until = mapped_column(DateTime)
    terms_and_conditions = mapped_column(JSON, default=list)
    redemption_instructions = mapped_column(Text)
    features = mapped_column(JSON, default=list)
    restrictions = mapped_column(JSON, default=list)
    how_to_redeem = mapped_column(JSON, default=list)
    partner_id = mapped_column(String(64))
    partner_name = mapped_column(String(120))
    partner_logo = mapped_column(String(255))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    transactions: Mapped[List["RewardTransaction"]] = relationship(
        "RewardTransaction", uselist=True, back_populates="reward"
    )


class RewardTransaction(Base):
    __tablename__ = "reward_transaction"
    __table_args__ = (
        ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_rt_user"),
        ForeignKeyConstraint(["reward_id"], ["reward.id"], name="fk_rt_reward"),
        Index("uq_rt_redemption_code", "redemption_code", unique=True),
        Index("idx_rt_user_created", "user_id", "created_at"),
    )

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, nullable=False)
    reward_id = mapped_column(Integer, nullable=False)
    tokens_spent = mapped_column(
        Integer, nullable=False, comment="Price locked at redemption time"
    )
    redemption_code = mapped_column(String(32), nullable=False)
    status = mapped_column(
        Enum(*TRANSACTION_STATUSES, name="transaction_status"),
        nullable=False,
        default="pending",
    )
    redeemed_at = mapped_column(DateTime)
    expires_at = mapped_column(DateTime)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    user: Mapped["User"] = relationship("User", back_populates="reward_transactions")
    reward: Mapped[Optional["Reward"]] = relationship(
        "Reward", back_populates="transactions"
    )


class Campaign(Base):
    __tablename__ = "campaign"
    __table_args__ = (Index("idx_campaign_status_end", "status", "end_date"),)

    id = mapped_column(Integer, primary_key=True)
    title = mapped_column(String(150), nullable=False)
    description = mapped_column(Text, nullable=False)
    short_description = mapped_column(String(200), nullable=False)
    long_description = mapped_column(Text, nullable=False)
    image_url = mapped_column(String(255), nullable=False)
    status = mapped_column(
        Enum("active", "upcoming", "completed", "cancelled", name="campaign_status"),
        nullable=False,
        default="active",
    )
    start_date = mapped_column(Date, nullable=False)
    end_date = mapped_column(Date, nullable=False)
    target_donations = mapped_column(Integer, nullable=False)
    current_donations = mapped_column(Integer, nullable=False, default=0)
    target_blood_types = mapped_column(JSON)
    target_donation_type = mapped_column(
        Enum(*DONATION_TYPES, name="donation_type")
    )
    priority = mapped_column(
        Enum("urgent", "high", "normal", name="campaign_priority"),
        nullable=False,
        default="normal",
    )
    bonus_tokens = mapped_column(Integer)
    requirements = mapped_column(JSON, default=list)
    benefits = mapped_column(JSON, default=list)
    participating_centers = mapped_column(JSON, default=list)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )
