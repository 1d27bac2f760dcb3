"""
Pydantic models for request validation

Field names follow the JSON the web client sends (camelCase).
"""
import datetime as dt
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field


MEASUREMENT_TYPES = ("glucose", "blood_pressure", "heart_rate", "weight", "sleep", "steps", "water", "exercise")
MEASUREMENT_SOURCES = ("manual", "device", "app", "quiz")
APPOINTMENT_TYPES = ("consultation", "follow-up", "check-up", "emergency", "other")
APPOINTMENT_STATUSES = ("upcoming", "completed", "cancelled", "no-show")
CHALLENGE_TYPES = ("fitness", "wellness", "nutrition", "mental_health", "general")
CHALLENGE_DIFFICULTIES = ("easy", "medium", "hard")
CHALLENGE_STATUSES = ("active", "completed", "paused", "abandoned")
NOTIFICATION_TYPES = ("medication", "appointment", "challenge", "measurement", "system", "fitness", "general")
NOTIFICATION_PRIORITIES = ("low", "medium", "high", "urgent")
MEDICATION_STATUSES = ("pending", "accepted", "declined", "scheduled")


# Auth

class MedicalInfo(BaseModel):
    conditions: List[str] = []
    goals: List[str] = []


class SignupPayload(BaseModel):
    """Account creation"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = None
    medicalInfo: Optional[MedicalInfo] = None


class LoginPayload(BaseModel):
    email: str
    password: str


class RefreshPayload(BaseModel):
    refreshToken: Optional[str] = None


# Measurements

class MeasurementPayload(BaseModel):
    """A single health measurement (glucose, blood pressure, ...)"""
    type: Literal[MEASUREMENT_TYPES]
    value: Any
    unit: Optional[str] = Field(None, max_length=20)
    timestamp: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    source: Literal[MEASUREMENT_SOURCES] = "manual"
    metadata: Optional[dict] = None


class MeasurementBatchPayload(BaseModel):
    measurements: Any = None


# Fitness

class FitnessQuizPayload(BaseModel):
    """Fitness section of the onboarding quiz"""
    primaryFitnessGoal: Optional[str] = None
    exerciseDaysPerWeek: Optional[List[int]] = None
    preferredActivities: Optional[List[str]] = None
    dailyStepGoal: Optional[List[int]] = None
    exerciseDuration: Optional[str] = None
    workoutDifficulty: Optional[str] = None
    stepTracking: Optional[str] = None


class FitnessLogPayload(BaseModel):
    """Activity increments for today's log"""
    steps: int = Field(0, ge=0)
    calories: int = Field(0, ge=0)
    workoutMinutes: int = Field(0, ge=0)
    waterIntake: int = Field(0, ge=0)
    workoutType: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class TargetsPayload(BaseModel):
    stepsTarget: Optional[int] = Field(None, ge=0)
    caloriesTarget: Optional[int] = Field(None, ge=0)
    workoutTarget: Optional[int] = Field(None, ge=0)
    waterTarget: Optional[int] = Field(None, ge=0)


# Care team

class PersonalDoctor(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    specialization: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    photo: Optional[str] = None
    rating: Optional[float] = Field(None, ge=1, le=5)
    experience: Optional[int] = Field(None, ge=0)


class AddDoctorPayload(BaseModel):
    doctorId: Optional[str] = None
    doctorData: Optional[PersonalDoctor] = None


class SelectedDoctorsPayload(BaseModel):
    selectedDoctors: List[str] = []


# Appointments

class AppointmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    doctorId: Optional[str] = None
    description: Optional[str] = None
    date: dt.date
    time: str
    duration: int = Field(30, ge=15, le=120)
    type: Literal[APPOINTMENT_TYPES] = "consultation"
    location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    doctorId: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=15, le=120)
    type: Optional[Literal[APPOINTMENT_TYPES]] = None
    location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None


class StatusPayload(BaseModel):
    status: Optional[str] = None


# Challenges

class ChallengeProgressPayload(BaseModel):
    # Validated by hand so non-numbers get a 400 rather than a 422
    progress: Any = None


# Notifications

class NotificationCreate(BaseModel):
    type: Literal[NOTIFICATION_TYPES] = "general"
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    priority: Literal[NOTIFICATION_PRIORITIES] = "medium"
    actionUrl: Optional[str] = Field(None, max_length=500)
    actionText: Optional[str] = Field(None, max_length=50)
    metadata: Optional[dict] = None
    expiresAt: Optional[str] = None


# Medications

class MedicationSuggest(BaseModel):
    """A doctor's medication suggestion for a patient"""
    userId: str
    doctorId: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    instructions: Optional[str] = None


class MedicationAccept(BaseModel):
    medicationId: Optional[str] = None
    name: Optional[str] = Field(None, max_length=200)
    dosage: Optional[str] = Field(None, max_length=100)
    status: Optional[Literal[MEDICATION_STATUSES]] = None
    scheduledTimes: Optional[List[str]] = None


class MedicationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field("Once daily", max_length=100)
    instructions: Optional[str] = None
    status: Literal[MEDICATION_STATUSES] = "accepted"
    scheduledTimes: List[str] = []


class SchedulePayload(BaseModel):
    scheduledTimes: List[str]


class MedicationLogPayload(BaseModel):
    scheduledTime: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
