from pydantic import BaseModel, ConfigDict, Field, field_validator

from passshare.domain.exchange import decode_text
from passshare.errors import MalformedEncoding

# Max plaintext 10,000 chars + 28 bytes nonce/tag, base64url (~13,400), rounded up
MAX_ENCRYPTED_DATA_LENGTH = 15000


class ShareRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    encrypted_data: str = Field(
        alias="encryptedData",
        min_length=1,
        max_length=MAX_ENCRYPTED_DATA_LENGTH,
    )

    @field_validator("encrypted_data")
    @classmethod
    def must_be_envelope(cls, value: str) -> str:
        try:
            decode_text(value)
        except MalformedEncoding as e:
            raise ValueError(e.message) from e
        return value


class ShareResponse(BaseModel):
    id: str


class RetrieveResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    encrypted_data: str = Field(alias="encryptedData")
    created_at: int = Field(alias="createdAt")
