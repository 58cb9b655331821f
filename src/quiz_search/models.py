from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import TypeAlias, Literal

QuizStatus: TypeAlias = Literal["draft", "published", "archived"]
QuizDifficulty: TypeAlias = Literal["easy", "medium", "hard", "mixed"]


class QuizOption(BaseModel):
    """One answer option of a multiple-choice question"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: str = Field(default="", description="Option text shown to the learner")
    is_correct: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_correct", "isCorrect"),
        description="Whether this option is a correct answer",
    )


class QuizQuestion(BaseModel):
    """Question fields that contribute to a quiz's searchable text"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_text: str = Field(
        validation_alias=AliasChoices("question_text", "questionText"),
        description="Prompt of the question",
    )
    options: list[QuizOption] = Field(
        default_factory=list, description="Answer options, in display order"
    )
    explanation: str | None = Field(
        default=None, description="Explanation shown after answering"
    )


class Quiz(BaseModel):
    """The subset of a quiz document needed to embed, filter and display it"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(
        validation_alias=AliasChoices("id", "_id", "quiz_id", "quizId"),
        description="Identifier of the quiz in the primary store",
    )
    title: str = Field(default="", description="Quiz title")
    description: str | None = Field(default=None, description="Quiz description")
    category: str | None = Field(default=None, description="Quiz category")
    tags: list[str] = Field(default_factory=list, description="Free-form topic tags")
    difficulty: QuizDifficulty = Field(default="mixed", description="Overall difficulty")
    language: str = Field(default="en", description="Content language code")
    status: QuizStatus = Field(default="published", description="Publication status")
    questions: list[QuizQuestion] = Field(
        default_factory=list, description="Questions in quiz order"
    )

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    def similarity_query(self) -> str:
        """Text used to look up quizzes similar to this one."""
        return f"{self.title} {self.description or ''} {' '.join(self.tags)}".strip()
