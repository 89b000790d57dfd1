# Re-export Beanie documents
from .user import User, DoctorInfo, MedicalCondition
from .moderation import Report, ReportableDocument, ModeratedDocument
from .post import Post
from .blog import Blog, BlogReference
from .event_post import EventPost
from .comment import Comment
from .event import Event, Participant
from .notification import Notification
from .chat import Conversation, Message, conversation_key
from .disease import Disease
from .diet import Diet, Completion
from .exercise import Exercise
