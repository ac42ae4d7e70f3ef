from pydantic import BaseModel, ConfigDict, Field


class StartPreviewIn(BaseModel):
    """Camera test request; omitted fields keep the console's current values."""

    title: str | None = Field(default=None, description="Session title shown to viewers")
    channel_name: str | None = Field(default=None, description="Transport channel name")


class AdmitIn(BaseModel):
    entry_id: str = Field(..., min_length=1, description="Waiting room entry to admit")


class NotifyLiveIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    session_id: str = Field(..., alias="sessionId")
