from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import Field, TypeAdapter, field_validator, model_validator

from qtrack.models.enums import FieldType, QuestionPriority, QuestionStatus
from qtrack.schemas.common import RequestModel


class FormFieldIn(RequestModel):
    # Client-side ids and order are accepted but ignored: position in the list is the order.
    id: str | None = None
    label: str = Field(min_length=1, max_length=100)
    field_type: FieldType
    options: list[str] = Field(default_factory=list)
    is_required: bool = False
    order: int | None = None

    @field_validator("label")
    @classmethod
    def _label_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("label is required")
        return v

    @model_validator(mode="after")
    def _radio_needs_options(self) -> "FormFieldIn":
        if self.field_type == FieldType.RADIO:
            self.options = [o for o in self.options if o and o.strip()]
            if not self.options:
                raise ValueError("RADIO fields need at least one option")
        else:
            self.options = []
        return self


FormFields = Annotated[list[FormFieldIn], Field(min_length=1)]
form_fields_adapter = TypeAdapter(FormFields)


class AnswerFormIn(RequestModel):
    fields: FormFields


class QuestionCreate(RequestModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=10000)
    assignee_id: str = Field(min_length=1)
    deadline: datetime | None = None
    priority: QuestionPriority = QuestionPriority.MEDIUM
    tag_ids: list[str] = Field(default_factory=list)
    answer_form: AnswerFormIn | None = None
    answer_form_template_id: str | None = None
    save_as_template: bool = False
    template_name: str | None = Field(default=None, max_length=100)


class QuestionUpdate(RequestModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1, max_length=10000)
    assignee_id: str | None = Field(default=None, min_length=1)
    deadline: datetime | None = None
    priority: QuestionPriority | None = None
    tag_ids: list[str] | None = None


class StatusChange(RequestModel):
    status: QuestionStatus


class FormDataIn(RequestModel):
    form_field_id: str = Field(min_length=1)
    value: str | None = None
    media_file_id: str | None = None


class AnswerCreate(RequestModel):
    content: str = Field(default="", max_length=10000)
    media_file_ids: list[str] = Field(default_factory=list)
    form_data: list[FormDataIn] = Field(default_factory=list)


class AnswerUpdate(RequestModel):
    # Omitted lists keep the stored attachments / form values; a given list replaces them.
    content: str | None = Field(default=None, max_length=10000)
    media_file_ids: list[str] | None = None
    form_data: list[FormDataIn] | None = None


class TemplateCreate(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    fields: FormFields


class TemplateUpdate(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    fields: FormFields | None = None
