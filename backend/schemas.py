from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.networks import validate_email


def _check_email(value: str) -> str:
    # Records are keyed by the address as sent; EmailStr would rewrite the domain.
    validate_email(value)
    return value


Email = Annotated[str, AfterValidator(_check_email)]


class UserCreate(BaseModel):
    uid: str
    name: Optional[str] = None
    email: Optional[Email] = None
    photoURL: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    uid: str
    email: Optional[str] = None


class RoleUpdateRequest(BaseModel):
    role: str


class SessionCreate(BaseModel):
    # Tutors send scheduling fields (registration/class dates, duration) we store as-is.
    model_config = ConfigDict(extra="allow")
    title: str
    description: Optional[str] = None
    tutorName: Optional[str] = None
    tutorEmail: Email


class SessionApproveRequest(BaseModel):
    isPaid: bool = False
    registrationFee: float = 0


class SessionRejectRequest(BaseModel):
    reason: Optional[str] = None
    response: Optional[str] = None


class BookingCreate(BaseModel):
    studentEmail: Email
    studySessionId: str
    tutorEmail: Optional[str] = None
    sessionTitle: Optional[str] = None
    registrationFee: float = 0


class ReviewCreate(BaseModel):
    studentEmail: Email
    studySessionId: str
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class NoteCreate(BaseModel):
    email: Email
    title: str
    description: Optional[str] = None


class NoteUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class MaterialCreate(BaseModel):
    model_config = ConfigDict(extra="allow")
    studySessionId: str
    tutorEmail: Email
    title: str
    imageUrl: Optional[str] = None
    driveLink: Optional[str] = None


class MaterialUpdate(BaseModel):
    title: Optional[str] = None
    imageUrl: Optional[str] = None
    driveLink: Optional[str] = None


class PaymentIntentRequest(BaseModel):
    amount: float = Field(gt=0)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
