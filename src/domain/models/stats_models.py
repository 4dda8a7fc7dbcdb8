from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class QuestionPerformance(BaseModel):
    correct_count: int = 0
    total_answers: int = 0

    @property
    def percent_correct(self) -> float:
        # A question nobody answered reads as 0%, not an error.
        if self.total_answers == 0:
            return 0.0
        return self.correct_count / self.total_answers * 100


class QuizStats(BaseModel):
    """Aggregate over a quiz's submissions. Never persisted."""
    total_responses: int
    average_score: float
    highest_score: int
    lowest_score: int
    question_performance: Dict[str, QuestionPerformance]


class ScoreBucket(BaseModel):
    score: int
    count: int


class AnswerBreakdown(BaseModel):
    correct: int = 0
    incorrect: int = 0


class QuizReport(BaseModel):
    """Everything the analytics page needs in one payload."""
    quiz_id: str
    title: str
    total_questions: int
    stats: Optional[QuizStats] = None  # None until the first submission
    average_percent: Optional[float] = None
    score_distribution: List[ScoreBucket] = Field(default_factory=list)
    answer_breakdown: AnswerBreakdown = Field(default_factory=AnswerBreakdown)

    @property
    def has_data(self) -> bool:
        return self.stats is not None


class SweepResult(BaseModel):
    deleted_count: int = 0
    skipped_quiz_ids: List[str] = Field(default_factory=list)
