from typing import List, Optional

from pydantic import BaseModel, Field


class ItemWorkbookIngestRequest(BaseModel):
    path: str
    dry_run: bool = False
    default_warehouse_id: Optional[int] = None


class ImportIssueRead(BaseModel):
    row: int
    kind: str
    message: str
    name: Optional[str] = None
    context: dict = Field(default_factory=dict)


class ImportReportRead(BaseModel):
    rows_read: int
    inserted: int
    updated: int
    unchanged: int
    stock_booked: int
    dry_run: bool
    issue_count: int
    issues: List[ImportIssueRead] = Field(default_factory=list)
