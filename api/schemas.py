from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class FilterSelectionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plant: str = ""
    issue: str = ""
    class_name: str = Field(default="", alias="class")
    category: str = ""


class MappingUpdateModel(BaseModel):
    mapping: Dict[str, Optional[str]] = Field(default_factory=dict)


class LedgerRequestModel(BaseModel):
    filters: FilterSelectionModel = Field(default_factory=FilterSelectionModel)
    sort: bool = True


class RowEditModel(BaseModel):
    plant_name: Optional[str] = None
    chronic_issue: Optional[str] = None
    failures_description: Optional[str] = None
    action_plan: Optional[str] = None
    class_name: Optional[str] = None
    duration_loss: Optional[float] = None
    frequency: Optional[float] = None
    category: Optional[str] = None
    progress: Optional[str] = None
    completion: Optional[float] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
