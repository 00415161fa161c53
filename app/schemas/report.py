"""
EOD report, gallery and analytics schemas
"""
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict


class ReportFields(BaseModel):
    """Report fields as submitted by the multipart form (create and update)"""
    employee_id: Optional[int] = None
    date: Optional[date_type] = None
    hours: Optional[Decimal] = None
    project: Optional[str] = None
    description: Optional[str] = None
    captions: List[str] = Field(default_factory=list)
    deleted_screenshot_ids: List[int] = Field(default_factory=list)
    updated_captions: Dict[int, str] = Field(default_factory=dict)


class ScreenshotOut(BaseModel):
    id: int
    report_id: int
    filename: str
    filepath: str
    caption: Optional[str] = None
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("uploaded_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)


class ReportOut(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    employee_email: Optional[str] = None
    employee_role: Optional[str] = None
    date: date_type
    hours: float
    project: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    editable: bool = False
    screenshots: List[ScreenshotOut] = Field(default_factory=list)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)


class BulkDeleteRequest(BaseModel):
    report_ids: List[int] = Field(..., min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted: int
    report_ids: List[int]


class StatsOut(BaseModel):
    """Dashboard counters; keys match what the dashboard reads"""
    totalEmployees: int
    totalReports: int
    totalHours: float
    reportsToday: int


class GalleryItem(BaseModel):
    id: int
    report_id: int
    filename: str
    filepath: str
    caption: Optional[str] = None
    uploaded_at: datetime
    date: date_type
    project: Optional[str] = None
    employee_id: int
    employee_name: str

    @field_serializer("uploaded_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)


class CostRow(BaseModel):
    employee_id: int
    employee_name: str
    hourly_rate: float
    total_hours: float
    report_count: int
    total_cost: float


class CostSummary(BaseModel):
    total_cost: float
    total_hours: float
    average_rate: float


class CostsOut(BaseModel):
    employees: List[CostRow]
    summary: CostSummary


class MissingEmployee(BaseModel):
    id: int
    name: str
    role: str


class MissingEodsOut(BaseModel):
    date: date_type
    total_employees: int
    reported: int
    missing: int
    missing_employees: List[MissingEmployee]
