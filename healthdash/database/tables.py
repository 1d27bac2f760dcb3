"""
Table definitions (SQLAlchemy Core)

All ids are UUID strings generated in Python and all timestamps are naive UTC,
so the same schema runs on PostgreSQL and SQLite.
"""
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

from healthdash.utils.timeutils import utcnow

metadata = MetaData()


def new_id() -> str:
    return str(uuid.uuid4())


def _id_column() -> Column:
    return Column("id", String(36), primary_key=True, default=new_id)


def _timestamps() -> list:
    return [
        Column("created_at", DateTime, nullable=False, default=utcnow),
        Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
    ]


def _user_fk(ondelete: str = "CASCADE") -> Column:
    return Column(
        "user_id", String(36), ForeignKey("users.id", ondelete=ondelete), nullable=False, index=True
    )


users = Table(
    "users",
    metadata,
    _id_column(),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(128), nullable=False),
    Column("age", Integer),
    Column("gender", String(20)),
    Column("conditions", JSON, nullable=False, default=list),
    Column("goals", JSON, nullable=False, default=list),
    Column("profile_photo", String(500)),
    Column("is_verified", Boolean, nullable=False, default=True),
    *_timestamps(),
)

user_profiles = Table(
    "user_profiles",
    metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("data", JSON, nullable=False, default=dict),
    Column("dashboard_preferences", JSON),
    Column("dashboard_quiz_completed", Boolean, nullable=False, default=False),
    Column("dashboard_quiz_completed_at", DateTime),
    Column("completed_at", DateTime),
    Column("last_updated", DateTime, nullable=False, default=utcnow),
    *_timestamps(),
)

measurements = Table(
    "measurements",
    metadata,
    _id_column(),
    _user_fk(),
    Column("type", String(20), nullable=False),
    Column("value", JSON, nullable=False),
    Column("unit", String(20)),
    Column("timestamp", DateTime, nullable=False, default=utcnow),
    Column("notes", String(500)),
    Column("source", String(10), nullable=False, default="manual"),
    Column("metadata", JSON),
    *_timestamps(),
    Index("ix_measurements_user_type_ts", "user_id", "type", "timestamp"),
)

fitness_goals = Table(
    "fitness_goals",
    metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("steps_target", Integer, nullable=False, default=8000),
    Column("calories_target", Integer, nullable=False, default=500),
    Column("workout_target", Integer, nullable=False, default=30),
    Column("water_target", Integer, nullable=False, default=2000),
    Column("progress_steps", Integer, nullable=False, default=0),
    Column("progress_calories", Integer, nullable=False, default=0),
    Column("progress_workout", Integer, nullable=False, default=0),
    Column("progress_water", Integer, nullable=False, default=0),
    Column("primary_fitness_goal", String(50), nullable=False, default="general_fitness"),
    Column("exercise_days_per_week", Integer, nullable=False, default=3),
    Column("preferred_activities", JSON, nullable=False, default=list),
    Column("exercise_duration", String(20), nullable=False, default="30min"),
    Column("workout_difficulty", String(20), nullable=False, default="beginner"),
    Column("weekly_stats", JSON),
    *_timestamps(),
)

fitness_logs = Table(
    "fitness_logs",
    metadata,
    _id_column(),
    _user_fk(),
    Column("log_date", Date, nullable=False),
    Column("steps", Integer, nullable=False, default=0),
    Column("calories", Integer, nullable=False, default=0),
    Column("workout_minutes", Integer, nullable=False, default=0),
    Column("water_intake", Integer, nullable=False, default=0),
    Column("workout_type", String(50)),
    Column("notes", Text),
    *_timestamps(),
    UniqueConstraint("user_id", "log_date", name="uq_fitness_logs_user_date"),
)

doctors = Table(
    "doctors",
    metadata,
    _id_column(),
    Column("name", String(100), nullable=False),
    Column("email", String(255)),
    Column("specialization", String(100), nullable=False),
    Column("photo", String(500)),
    Column("rating", Float, nullable=False, default=4.5),
    Column("experience", Integer, nullable=False, default=5),
    Column("is_system_approved", Boolean, nullable=False, default=True),
    Column("added_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    *_timestamps(),
)

care_team = Table(
    "care_team",
    metadata,
    _id_column(),
    _user_fk(),
    Column("doctor_id", String(36), ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
    Column("accepted", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
    UniqueConstraint("user_id", "doctor_id", name="uq_care_team_user_doctor"),
)

appointments = Table(
    "appointments",
    metadata,
    _id_column(),
    _user_fk(),
    Column("doctor_id", String(36), ForeignKey("doctors.id", ondelete="SET NULL")),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("date", Date, nullable=False, index=True),
    Column("time", String(5), nullable=False),
    Column("duration", Integer, nullable=False, default=30),
    Column("type", String(20), nullable=False, default="consultation"),
    Column("status", String(20), nullable=False, default="upcoming"),
    Column("location", String(200)),
    Column("notes", Text),
    Column("reminder_sent", Boolean, nullable=False, default=False),
    *_timestamps(),
)

challenges = Table(
    "challenges",
    metadata,
    _id_column(),
    Column("title", String(200), nullable=False, index=True),
    Column("description", Text, nullable=False),
    Column("type", String(20), nullable=False),
    Column("difficulty", String(10), nullable=False),
    Column("target", Float, nullable=False),
    Column("unit", String(30), nullable=False),
    Column("duration", Integer, nullable=False),
    Column("points", Integer, nullable=False),
    Column("icon", String(20)),
    Column("tip", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("participants", Integer, nullable=False, default=0),
    *_timestamps(),
)

user_challenges = Table(
    "user_challenges",
    metadata,
    _id_column(),
    _user_fk(),
    Column("challenge_id", String(36), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
    Column("current", Float, nullable=False, default=0),
    Column("status", String(20), nullable=False, default="active"),
    Column("joined_at", DateTime, nullable=False, default=utcnow),
    Column("completed_at", DateTime),
    Column("last_updated", DateTime, nullable=False, default=utcnow),
    *_timestamps(),
    UniqueConstraint("user_id", "challenge_id", name="uq_user_challenges_user_challenge"),
)

notifications = Table(
    "notifications",
    metadata,
    _id_column(),
    _user_fk(),
    Column("type", String(20), nullable=False),
    Column("title", String(200), nullable=False),
    Column("message", String(1000), nullable=False),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("priority", String(10), nullable=False, default="medium"),
    Column("action_url", String(500)),
    Column("action_text", String(50)),
    Column("metadata", JSON),
    Column("expires_at", DateTime, index=True),
    *_timestamps(),
)

medications = Table(
    "medications",
    metadata,
    _id_column(),
    _user_fk(),
    Column("doctor_id", String(36), ForeignKey("doctors.id", ondelete="SET NULL")),
    Column("name", String(200), nullable=False),
    Column("dosage", String(100), nullable=False),
    Column("frequency", String(100), nullable=False),
    Column("instructions", Text),
    Column("status", String(20), nullable=False, default="pending"),
    Column("suggested_at", DateTime, default=utcnow),
    Column("accepted_at", DateTime),
    Column("scheduled_times", JSON, nullable=False, default=list),
    *_timestamps(),
    UniqueConstraint("user_id", "name", "dosage", name="uq_medications_user_name_dosage"),
)

medication_logs = Table(
    "medication_logs",
    metadata,
    _id_column(),
    _user_fk(),
    Column("medication_id", String(36), ForeignKey("medications.id", ondelete="CASCADE"), nullable=False),
    Column("scheduled_time", DateTime, nullable=False, index=True),
    Column("taken_time", DateTime),
    Column("status", String(10), nullable=False),
    Column("notes", String(500)),
    *_timestamps(),
    UniqueConstraint("medication_id", "scheduled_time", name="uq_medication_logs_slot"),
)
