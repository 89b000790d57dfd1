from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Literal
import re

from app.constants import (
    Role,
    ApprovalStatus,
    ContentType,
    ReportReason,
    NotificationType,
    PostCategory,
    BlogCategory,
    EventCategory,
    EventStatus,
    OrganizerType,
    ParticipantStatus,
    DiseaseCategory,
    Severity,
    Prevalence,
    DietPeriod,
    ExerciseType,
)

IMAGE_URL_RE = re.compile(r"^(https?://|/uploads/)")
TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


def _check_images(images: Optional[List[str]]) -> Optional[List[str]]:
    if images is None:
        return images
    for url in images:
        if not IMAGE_URL_RE.match(url):
            raise ValueError("Image URLs must start with http(s):// or /uploads/")
    return images


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total: int
    has_next: bool
    has_prev: bool


# -------------------- Auth / User Schemas --------------------


class DoctorProfileIn(BaseModel):
    specialization: Optional[str] = Field(None, max_length=100)
    hospital: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    experience: Optional[int] = Field(None, ge=0, le=50)


class RegisterIn(BaseModel):
    """Public registration; only patients and doctors may self-register."""

    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    role: Literal["patient", "doctor"] = "patient"
    date_of_birth: Optional[datetime] = None
    doctor_info: Optional[DoctorProfileIn] = None


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class RefreshIn(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserBrief(BaseModel):
    """Public author card embedded in content responses."""

    id: Optional[str] = None
    username: str
    first_name: str
    last_name: str
    profile_picture: Optional[str] = None
    role: Optional[Role] = None


class DoctorInfoOut(BaseModel):
    approval_status: ApprovalStatus
    approval_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    specialization: Optional[str] = None
    hospital: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[int] = None

    class Config:
        from_attributes = True


class MedicalConditionOut(BaseModel):
    id: str
    disease_id: str
    diagnosis_date: Optional[datetime] = None
    notes: Optional[str] = None


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    role: Role
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    is_active: bool
    is_verified: bool
    last_login: Optional[datetime] = None
    followers_count: int = 0
    following_count: int = 0
    doctor_info: Optional[DoctorInfoOut] = None
    medical_conditions: List[MedicalConditionOut] = []
    created_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    profile_picture: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    doctor_info: Optional[DoctorProfileIn] = None  # ignored for non-doctors


class UserStatusUpdate(BaseModel):
    """Admin-only account changes."""

    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None
    role: Optional[Role] = None


class MedicalConditionIn(BaseModel):
    disease_id: str
    diagnosis_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


# -------------------- Moderation --------------------


class ReportIn(BaseModel):
    reason: ReportReason
    description: Optional[str] = Field(None, max_length=500)


class ApprovalIn(BaseModel):
    is_approved: bool = True


class DoctorRejectIn(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ReactionOut(BaseModel):
    like_count: int
    dislike_count: int
    is_liked: bool
    is_disliked: bool


# -------------------- Posts --------------------


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    category: PostCategory
    tags: List[str] = []
    images: List[str] = []
    is_anonymous: bool = False
    is_sensitive: bool = False
    medical_advice: bool = False
    symptoms: List[str] = []
    treatments: List[str] = []

    @field_validator("images")
    @classmethod
    def validate_images(cls, v):
        return _check_images(v)


class PostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    category: Optional[PostCategory] = None
    tags: Optional[List[str]] = None
    images: Optional[List[str]] = None
    is_anonymous: Optional[bool] = None
    is_sensitive: Optional[bool] = None
    medical_advice: Optional[bool] = None
    symptoms: Optional[List[str]] = None
    treatments: Optional[List[str]] = None

    @field_validator("images")
    @classmethod
    def validate_images(cls, v):
        return _check_images(v)


class PostOut(ReactionOut):
    id: str
    author: UserBrief
    title: str
    content: str
    category: PostCategory
    tags: List[str]
    images: List[str]
    is_anonymous: bool
    is_sensitive: bool
    views: int
    medical_advice: bool
    symptoms: List[str]
    treatments: List[str]
    slug: str
    is_approved: bool
    is_reported: bool
    report_count: int
    comment_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# -------------------- Blogs --------------------


class BlogReferenceIn(BaseModel):
    title: str = Field(..., max_length=200)
    url: str


class BlogCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = Field(None, max_length=300)
    category: BlogCategory
    tags: List[str] = []
    featured_image: Optional[str] = None
    is_published: bool = False
    is_featured: bool = False
    medical_disclaimer: Optional[str] = None
    references: List[BlogReferenceIn] = []
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)


class BlogUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, max_length=300)
    category: Optional[BlogCategory] = None
    tags: Optional[List[str]] = None
    featured_image: Optional[str] = None
    is_published: Optional[bool] = None
    is_featured: Optional[bool] = None
    medical_disclaimer: Optional[str] = None
    references: Optional[List[BlogReferenceIn]] = None
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)


class BlogOut(ReactionOut):
    id: str
    author: UserBrief
    title: str
    content: str
    excerpt: Optional[str] = None
    category: BlogCategory
    tags: List[str]
    featured_image: Optional[str] = None
    is_published: bool
    is_featured: bool
    views: int
    reading_time: int
    medical_disclaimer: str
    references: List[BlogReferenceIn]
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    slug: str
    is_approved: bool
    is_reported: bool
    report_count: int
    comment_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# -------------------- Comments --------------------


class CommentCreate(BaseModel):
    post_or_blog: str
    post_type: ContentType = ContentType.POST
    content: str = Field(..., min_length=1, max_length=1000)
    is_anonymous: bool = False
    medical_advice: bool = False
    parent_comment: Optional[str] = None


class ReplyIn(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    is_anonymous: bool = False


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)


class CommentOut(ReactionOut):
    id: str
    post_or_blog: str
    post_type: ContentType
    author: UserBrief
    content: str
    is_anonymous: bool
    is_helpful: bool
    medical_advice: bool
    parent_comment: Optional[str] = None
    replies: List["CommentOut"] = []
    reply_count: int = 0
    is_approved: bool
    is_reported: bool
    report_count: int
    created_at: datetime
    updated_at: datetime


# -------------------- Events --------------------


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    category: EventCategory
    instructor: Optional[str] = Field(None, max_length=100)
    instructor_title: Optional[str] = Field(None, max_length=100)
    date: datetime
    end_date: datetime
    location: str = Field(..., min_length=1, max_length=200)
    location_address: Optional[str] = Field(None, max_length=300)
    max_participants: int = Field(..., ge=1, le=1000)
    price: float = Field(0, ge=0)
    is_online: bool = False
    is_external: bool = False
    organizer: Optional[str] = Field(None, max_length=200)
    organizer_type: OrganizerType = OrganizerType.INDIVIDUAL
    tags: List[str] = []
    requirements: Optional[str] = Field(None, max_length=1000)
    image: Optional[str] = None

    @model_validator(mode="after")
    def check_end_after_start(self):
        if self.end_date <= self.date:
            raise ValueError("end_date must be after date")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    category: Optional[EventCategory] = None
    instructor: Optional[str] = Field(None, max_length=100)
    instructor_title: Optional[str] = Field(None, max_length=100)
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    location_address: Optional[str] = Field(None, max_length=300)
    max_participants: Optional[int] = Field(None, ge=1, le=1000)
    price: Optional[float] = Field(None, ge=0)
    is_online: Optional[bool] = None
    organizer: Optional[str] = Field(None, max_length=200)
    organizer_type: Optional[OrganizerType] = None
    tags: Optional[List[str]] = None
    requirements: Optional[str] = Field(None, max_length=1000)
    image: Optional[str] = None
    status: Optional[Literal["completed", "cancelled"]] = None


class EventRegisterIn(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class EventDecisionIn(BaseModel):
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = Field(None, max_length=500)


class EventOut(BaseModel):
    id: str
    title: str
    description: str
    category: EventCategory
    instructor: Optional[str] = None
    instructor_title: Optional[str] = None
    date: datetime
    end_date: datetime
    location: str
    location_address: Optional[str] = None
    max_participants: int
    current_participants: int
    available_spots: int
    price: float
    is_online: bool
    is_external: bool
    organizer: Optional[str] = None
    organizer_type: OrganizerType
    tags: List[str]
    requirements: Optional[str] = None
    image: Optional[str] = None
    status: EventStatus
    author: Optional[UserBrief] = None
    rejection_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    is_reported: bool
    report_count: int
    is_registered: bool = False
    is_owner: bool = False
    can_register: Optional[bool] = None
    created_at: datetime


class ParticipantOut(BaseModel):
    user: Optional[UserBrief] = None
    registration_date: datetime
    status: ParticipantStatus
    notes: Optional[str] = None


class EventPostCreate(BaseModel):
    event_id: str
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    images: List[str] = []

    @field_validator("images")
    @classmethod
    def validate_images(cls, v):
        return _check_images(v)


class EventPostOut(ReactionOut):
    id: str
    event_id: str
    author: UserBrief
    title: str
    content: str
    images: List[str]
    is_approved: bool
    is_reported: bool
    report_count: int
    created_at: datetime


# -------------------- Messages / Notifications --------------------


class MessageIn(BaseModel):
    receiver_id: str
    content: str = Field(..., min_length=1, max_length=2000)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message content cannot be empty")
        return v


class MessageOut(BaseModel):
    id: str
    conversation_id: str
    sender: str
    receiver: str
    content: str
    is_read: bool
    created_at: datetime


class ConversationOut(BaseModel):
    id: str
    other_participant: Optional[UserBrief] = None
    is_online: bool = False
    last_message: Optional[MessageOut] = None
    unread_count: int = 0
    updated_at: datetime


class NotificationOut(BaseModel):
    id: str
    recipient: str
    sender: Optional[UserBrief] = None
    type: NotificationType
    post: Optional[str] = None
    post_type: Optional[ContentType] = None
    comment: Optional[str] = None
    is_read: bool
    created_at: datetime


# -------------------- Diseases --------------------


class DiseaseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    category: DiseaseCategory
    symptoms: List[str] = []
    common_treatments: List[str] = []
    severity: Severity = Severity.MEDIUM
    prevalence: Prevalence = Prevalence.COMMON
    tags: List[str] = []


class DiseaseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    category: Optional[DiseaseCategory] = None
    symptoms: Optional[List[str]] = None
    common_treatments: Optional[List[str]] = None
    severity: Optional[Severity] = None
    prevalence: Optional[Prevalence] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


class DiseaseOut(BaseModel):
    id: str
    name: str
    description: str
    category: DiseaseCategory
    symptoms: List[str]
    common_treatments: List[str]
    severity: Severity
    prevalence: Prevalence
    tags: List[str]
    is_active: bool
    created_at: datetime


# -------------------- Diets / Exercises --------------------


class DietCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=1)
    period: DietPeriod = DietPeriod.DAILY
    custom_period: Optional[str] = Field(None, max_length=50)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def require_custom_period(self):
        if self.period == DietPeriod.CUSTOM and not self.custom_period:
            raise ValueError("custom_period is required when period is custom")
        return self


class DietUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=1)
    period: Optional[DietPeriod] = None
    custom_period: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None
    end_date: Optional[datetime] = None


class CompletionIn(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class DietOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    duration: Optional[int] = None
    period: DietPeriod
    custom_period: Optional[str] = None
    is_active: bool
    start_date: datetime
    end_date: Optional[datetime] = None
    completed_count: int
    completed_today: bool = False
    last_completed_at: Optional[datetime] = None
    created_at: datetime


class ExerciseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    duration: int = Field(0, ge=0)
    calories: int = Field(..., ge=0)
    type: ExerciseType
    date: datetime
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)


class ExerciseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=0)
    calories: Optional[int] = Field(None, ge=0)
    type: Optional[ExerciseType] = None
    date: Optional[datetime] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)


class ExerciseOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    duration: int
    calories: int
    type: ExerciseType
    date: datetime
    time: Optional[str] = None
    created_at: datetime
