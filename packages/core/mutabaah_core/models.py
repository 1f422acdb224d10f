from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class QuizAnswerItem(BaseModel):
    question_id: str = Field(min_length=1, max_length=40)
    selected_index: int | None = Field(default=None, ge=0)


class CheckinSpec(BaseModel):
    activities: list[str] = Field(default_factory=list)
    notes: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _normalize(self) -> "CheckinSpec":
        ids = sorted({str(a).strip() for a in self.activities if str(a).strip()})
        self.activities = ids
        # Notes only make sense for activities that were actually checked.
        self.notes = {
            str(k): str(v).strip()[:500]
            for k, v in self.notes.items()
            if str(k) in ids and str(v).strip()
        }
        return self
