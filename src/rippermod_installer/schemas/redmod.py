"""Schema for the REDmod ``info.json`` descriptor."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CustomSoundKind(StrEnum):
    SKIP = "mod_skip"
    SFX_2D = "mod_sfx_2d"
    SFX_CITY = "mod_sfx_city"
    SFX_LOW_OCCLUSION = "mod_sfx_low_occlusion"
    SFX_OCCLUSION = "mod_sfx_occlusion"
    SFX_RADIO = "mod_sfx_radio"
    SFX_ROOM = "mod_sfx_room"
    SFX_STREET = "mod_sfx_street"


class CustomSoundDeclaration(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    type: CustomSoundKind
    file: str | None = None
    gain: float | None = None
    pitch: float | None = None


class REDmodInfo(BaseModel):
    """Decoded ``info.json``; only ``name`` is mandatory."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1)
    version: str | None = None
    description: str | None = None
    custom_sounds: list[CustomSoundDeclaration] | None = Field(default=None, alias="customSounds")

    @field_validator("name")
    @classmethod
    def _name_is_one_directory(cls, v: str) -> str:
        # The name becomes the install directory under the base dir.
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("must be a single directory name")
        return v

    @property
    def declares_sound_content(self) -> bool:
        """Whether any declared sound expects a file to be shipped."""
        return any(s.type != CustomSoundKind.SKIP for s in self.custom_sounds or [])
