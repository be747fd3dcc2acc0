"""Poll Pydantic schemas and vote percentage arithmetic."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .profile import AuthorSummary


def vote_percentage(count: int, total: int) -> int:
    """Return ``count / total`` as a whole percentage, halves rounded up.

    Zero total yields zero rather than a division error.
    """
    if total <= 0:
        return 0
    return (count * 200 + total) // (2 * total)


class PollRecord(BaseModel):
    """Row of the ``polls`` collection."""

    id: str
    user_id: str
    question: str
    options: list[str]
    votes: dict[str, int] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    @field_validator("votes", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return {} if value is None else value


class OptionResult(BaseModel):
    """Tally for one option, in option order."""

    option: str
    votes: int
    percentage: int


class PollView(PollRecord):
    """Poll joined with its author, with derived tallies."""

    author: AuthorSummary

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_votes(self) -> int:
        return sum(self.votes.get(option, 0) for option in self.options)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def results(self) -> list[OptionResult]:
        total = self.total_votes
        return [
            OptionResult(
                option=option,
                votes=self.votes.get(option, 0),
                percentage=vote_percentage(self.votes.get(option, 0), total),
            )
            for option in self.options
        ]

    def percentage(self, option: str) -> int:
        """Share of the votes cast for ``option``; 0 for unknown options."""
        return vote_percentage(self.votes.get(option, 0), self.total_votes)


class PollCreate(BaseModel):
    """Schema for creating a poll."""

    question: str = Field(..., min_length=1, max_length=500, description="Poll question")
    options: list[str] = Field(..., description="Two to four option labels")


class PollVote(BaseModel):
    """Schema for casting a vote."""

    option: str = Field(..., min_length=1, description="Label of the chosen option")
