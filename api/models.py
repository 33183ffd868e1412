"""Pydantic request/response schemas for the FastAPI backend."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---- Requests ----

class CreateSessionRequest(BaseModel):
    # Optional here so an empty/missing prompt reaches the registry and
    # comes back as a 400, not pydantic's 422.
    prompt: Optional[str] = Field(default=None, description="Instruction for the agent")
    cwd: Optional[str] = Field(default=None, description="Working directory for the agent")


# ---- Responses ----
# Wire names are camelCase to match the event channel.

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SessionCreated(_CamelModel):
    session_id: str = Field(alias="sessionId")


class SessionInfo(_CamelModel):
    id: str
    prompt: str
    started_at: int = Field(alias="startedAt", description="Epoch milliseconds")
    working_directory: str = Field(alias="workingDirectory")
    status: str = "running"


class Acknowledgement(BaseModel):
    ok: bool = True


class ServerStatus(_CamelModel):
    status: str = "ok"
    active_sessions: int = Field(default=0, alias="activeSessions")
    observers: int = 0
    uptime_seconds: float = Field(default=0.0, alias="uptimeSeconds")
    agent_command: list[str] = Field(default_factory=list, alias="agentCommand")

