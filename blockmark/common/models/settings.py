"""Settings models for blockmark."""

from pydantic import BaseModel


class ConverterOptions(BaseModel):
    """Options handed to the markdown converter."""

    header_ids: bool = False  # generate id attributes on headings
    task_lists: bool = False  # native checkbox rendering; blockmark renders its own
    html: bool = True  # pass raw inline markup through

    model_config = {"frozen": True}
