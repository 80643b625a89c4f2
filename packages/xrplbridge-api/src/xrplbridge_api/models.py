from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class StartTransferRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    rlusd_amount: Decimal = Field(gt=0)
    destination_network: str = Field(min_length=1)
    xrpl_seed: SecretStr
    destination_address: str = Field(min_length=1)

    @field_validator("xrpl_seed")
    @classmethod
    def _seed_present(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("XRPL seed is required")
        return v


class AccountInfoRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    address: str | None = None
    xrpl_seed: SecretStr | None = None


class SendRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    sender_seed: SecretStr
    destination_address: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    destination_tag: str | None = None
