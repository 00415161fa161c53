"""
EOD report and screenshot models
"""
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from app.db.base import Base
from app.utils.datetime_utils import now_utc


class EodReport(Base):
    __tablename__ = "eod_reports"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    hours = Column(Numeric(5, 2), nullable=False)
    project = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    employee = relationship("Employee", back_populates="reports")
    screenshots = relationship(
        "Screenshot",
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Screenshot.id",
    )


class Screenshot(Base):
    __tablename__ = "screenshots"

    id = Column(Integer, primary_key=True, index=True)
    report_id = Column(Integer, ForeignKey("eod_reports.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String, nullable=False)
    filepath = Column(String, nullable=False)  # URL returned by the blob store
    caption = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    report = relationship("EodReport", back_populates="screenshots")
