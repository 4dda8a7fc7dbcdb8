import uuid
from pydantic import AfterValidator, BaseModel, Field, ConfigDict, model_validator
from typing import Annotated, List, Optional, Dict
from datetime import datetime, timezone


# Documents written by this version of the service.
# Version 1 is the camelCase layout of the original web client.
SCHEMA_VERSION = 2


def _utc_now():
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (pymongo returns naive ones unless tz_aware)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class Question(BaseModel):
    """One multiple-choice item, owned by its quiz."""
    id: str = Field(default_factory=_new_id)
    text: str
    options: List[str]
    correct_option: int = 0

    @model_validator(mode="after")
    def _correct_option_in_range(self):
        if not 0 <= self.correct_option < len(self.options):
            raise ValueError(
                f"correct_option {self.correct_option} out of range for {len(self.options)} options"
            )
        return self

    def public_view(self) -> dict:
        """Question as shown to respondents: no correct answer."""
        return {"id": self.id, "text": self.text, "options": list(self.options)}


class Quiz(BaseModel):
    """A titled set of questions owned by one creator."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    title: str
    description: str = ""
    questions: List[Question]
    created_by: str  # Owner (user id)
    created_at: UtcDatetime = Field(default_factory=_utc_now)
    is_published: bool = False
    responses: int = Field(0, ge=0)  # Bumped once per submission, best effort
    schema_version: int = SCHEMA_VERSION

    def to_dict(self):
        """Convert model to dictionary for MongoDB."""
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    def public_view(self) -> dict:
        """Quiz as served on the shared link."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "questions": [q.public_view() for q in self.questions],
        }


class StudentAnswer(BaseModel):
    question_id: str
    selected_option: int = Field(..., ge=0)
    is_correct: bool


class QuizSubmission(BaseModel):
    """One respondent's completed attempt. Never updated after insert."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    quiz_id: str
    submitted_at: UtcDatetime = Field(default_factory=_utc_now)
    student_name: str
    answers: List[StudentAnswer]
    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    schema_version: int = SCHEMA_VERSION

    @model_validator(mode="after")
    def _score_matches_answers(self):
        correct = sum(1 for a in self.answers if a.is_correct)
        if self.score != correct:
            raise ValueError(f"score {self.score} does not match {correct} correct answers")
        if self.total_questions != len(self.answers):
            raise ValueError("total_questions must equal the number of answers")
        return self

    def to_dict(self):
        """Convert model to dictionary for MongoDB."""
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data


class User(BaseModel):
    """User account kept by the identity provider."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_id, alias="_id")
    email: str
    password_hash: str = ""  # Empty for provider-only accounts
    display_name: str = ""
    providers: Dict[str, str] = Field(default_factory=dict)  # provider name -> subject
    reset_token: Optional[str] = None
    reset_token_expires: Optional[UtcDatetime] = None
    created_at: UtcDatetime = Field(default_factory=_utc_now)
    last_login: Optional[UtcDatetime] = None
    is_active: bool = True
    schema_version: int = SCHEMA_VERSION

    def to_dict(self):
        """Convert model to dictionary for MongoDB."""
        return self.model_dump(by_alias=True)
