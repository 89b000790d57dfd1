from enum import Enum


class Role(str, Enum):
    """System roles for RBAC."""
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContentType(str, Enum):
    """Discriminator for documents that can be commented on."""
    POST = "Post"
    BLOG = "Blog"
    EVENT_POST = "EventPost"


class ReportReason(str, Enum):
    SPAM = "spam"
    INAPPROPRIATE = "inappropriate"
    HARASSMENT = "harassment"
    FALSE_INFORMATION = "false_information"
    OTHER = "other"


class NotificationType(str, Enum):
    LIKE_POST = "like_post"
    LIKE_COMMENT = "like_comment"
    COMMENT_POST = "comment_post"
    REPLY_COMMENT = "reply_comment"
    FOLLOW = "follow"
    MESSAGE = "message"


class PostCategory(str, Enum):
    DIABETES = "diabetes"
    HEART_DISEASE = "heart-disease"
    CANCER = "cancer"
    MENTAL_HEALTH = "mental-health"
    ARTHRITIS = "arthritis"
    ASTHMA = "asthma"
    DIGESTIVE = "digestive"
    NEUROLOGICAL = "neurological"
    AUTOIMMUNE = "autoimmune"
    SUCCESS_STORY = "success-story"
    OTHER = "other"


class BlogCategory(str, Enum):
    MEDICAL_ADVICE = "medical-advice"
    HEALTH_TIPS = "health-tips"
    DISEASE_INFORMATION = "disease-information"
    TREATMENT_GUIDES = "treatment-guides"
    PREVENTION = "prevention"
    NUTRITION = "nutrition"
    MENTAL_HEALTH = "mental-health"
    PEDIATRICS = "pediatrics"
    GERIATRICS = "geriatrics"
    EMERGENCY_CARE = "emergency-care"
    RESEARCH = "research"
    OTHER = "other"


class EventCategory(str, Enum):
    MEDITATION = "meditation"
    YOGA = "yoga"
    NUTRITION = "nutrition"
    EXERCISE = "exercise"
    PSYCHOLOGY = "psychology"
    MEDICINE = "medicine"
    ALTERNATIVE_MEDICINE = "alternative-medicine"
    HEALTH_TECHNOLOGY = "health-technology"
    OTHER = "other"


class OrganizerType(str, Enum):
    GOVERNMENT = "government"
    PRIVATE = "private"
    NGO = "ngo"
    INDIVIDUAL = "individual"
    HOSPITAL = "hospital"
    UNIVERSITY = "university"


class EventStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FULL = "full"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class ParticipantStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class DiseaseCategory(str, Enum):
    CHRONIC = "chronic"
    INFECTIOUS = "infectious"
    GENETIC = "genetic"
    AUTOIMMUNE = "autoimmune"
    CARDIOVASCULAR = "cardiovascular"
    RESPIRATORY = "respiratory"
    NEUROLOGICAL = "neurological"
    MENTAL_HEALTH = "mental-health"
    DIGESTIVE = "digestive"
    METABOLIC = "metabolic"
    CANCER = "cancer"
    OTHER = "other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Prevalence(str, Enum):
    RARE = "rare"
    UNCOMMON = "uncommon"
    COMMON = "common"
    VERY_COMMON = "very-common"


class DietPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class ExerciseType(str, Enum):
    """Calories gained (income) or burnt (expense)."""
    INCOME = "income"
    EXPENSE = "expense"


ANONYMOUS_AUTHOR = {
    "id": None,
    "username": "Anonymous User",
    "first_name": "Anonymous",
    "last_name": "User",
    "profile_picture": None,
}

DEFAULT_REJECTION_REASON = "No reason provided"

DEFAULT_MEDICAL_DISCLAIMER = (
    "This content is for informational purposes only and is not a substitute "
    "for professional medical advice. Always consult your doctor."
)
