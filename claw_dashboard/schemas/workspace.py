from pydantic import BaseModel


class WorkspaceFile(BaseModel):
    path: str
    content: str


class WorkspaceWriteResponse(BaseModel):
    path: str
    size: int


class SkillInfo(BaseModel):
    name: str
    description: str = ""
    path: str


class MemoryLog(BaseModel):
    date: str
    filename: str
    content: str
