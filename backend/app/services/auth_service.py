from app.constants import Role
from app.exceptions import DuplicateAccount, Unauthorized
from app.models import DoctorInfo, User
from app.schemas import RegisterIn
from app.security import hash_password, issue_tokens, user_from_token, verify_password
from app.utils.dates import utcnow
from app.utils.logger import get_logger
from app.utils.updates import apply_update

logger = get_logger("auth_service")


async def register_user(data: RegisterIn) -> tuple[dict, User]:
    """Create a patient or (pending) doctor account and sign it in."""
    email = data.email.lower()
    if await User.find_one(User.email == email):
        raise DuplicateAccount("Email is already registered")
    if await User.find_one(User.username == data.username):
        raise DuplicateAccount("Username is already taken")

    role = Role(data.role)
    user = User(
        username=data.username,
        email=email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=role,
        date_of_birth=data.date_of_birth,
    )
    if role == Role.DOCTOR:
        profile = data.doctor_info.model_dump() if data.doctor_info else {}
        user.doctor_info = DoctorInfo(**profile)
    await user.insert()
    logger.info(f"Registered {role.value} {user.id} ({user.username})")
    return issue_tokens(user), user


async def login(*, login: str, password: str) -> tuple[dict, User]:
    """Password login by email or username."""
    identifier = login.strip()
    if "@" in identifier:
        user = await User.find_one(User.email == identifier.lower())
    else:
        user = await User.find_one(User.username == identifier)
    if not user or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")

    await apply_update(user, {"$set": {"last_login": utcnow()}})
    logger.info(f"User {user.id} logged in")
    return issue_tokens(user), user


async def refresh_tokens(refresh_token: str) -> dict:
    user = await user_from_token(refresh_token, token_type="refresh")
    return issue_tokens(user)
