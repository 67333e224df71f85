"""
schemas/folder.py
-----------------
Folder request/response models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    icon: Optional[str] = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v


class FolderUpdate(BaseModel):
    """Only the fields sent are applied; parent_id=null moves to the root."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    parent_id: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    icon: Optional[str] = Field(default=None, max_length=50)


class FolderRead(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    document_count: Optional[int] = None
    subfolder_count: Optional[int] = None

    model_config = {"from_attributes": True}


class FolderTreeNode(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    children: list["FolderTreeNode"] = []
