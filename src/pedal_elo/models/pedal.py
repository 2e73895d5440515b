from pydantic import BaseModel, ConfigDict


class Pedal(BaseModel):
    """A catalogue pedal."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    brand: str
    filename: str
    image: str | None = None
    width: float | None = None
    height: float | None = None
