from pydantic import BaseModel, Field
from typing import List, Optional

class QuestionInput(BaseModel):
    """A question as sent by the quiz editor. Content is checked by the quiz service."""
    id: Optional[str] = Field(None, description="Client-side id; generated when missing.")
    text: str = ""
    options: List[str] = Field(default_factory=list)
    correct_option: int = 0

class QuizRequest(BaseModel):
    """Request model for creating or editing a quiz."""
    title: str = ""
    description: str = ""
    questions: List[QuestionInput] = Field(default_factory=list)
    publish: bool = Field(False, description="Publish immediately instead of saving a draft.")

class PublishRequest(BaseModel):
    published: bool = True

class OptionRequest(BaseModel):
    text: str = ""

class CorrectOptionRequest(BaseModel):
    correct_option: int = Field(..., description="0-based index of the correct option.")

class SubmitAttemptRequest(BaseModel):
    """Request model for a respondent's finished attempt."""
    student_name: str = ""
    selections: List[int] = Field(..., description="Selected option per question; -1 means unanswered.")

class SweepOldRequest(BaseModel):
    days_old: Optional[int] = Field(None, description="Age threshold in days.")

class SweepInactiveRequest(BaseModel):
    min_responses: Optional[int] = Field(None, description="Quizzes with at most this many responses are removed.")

class CredentialsRequest(BaseModel):
    email: str
    password: str
    display_name: str = ""

class PasswordResetRequest(BaseModel):
    email: str

class NewPasswordRequest(BaseModel):
    password: str

class SubmissionResponse(BaseModel):
    """What a respondent sees after submitting."""
    submission_id: Optional[str]
    score: int
    total_questions: int
    message: str
    answers: List[dict]
