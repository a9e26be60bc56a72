"""
Role-Specific Payloads

Each provider role attaches its own structured data to a claim. The payload
is a closed union keyed by provider role, with an UnknownPayload variant that
keeps unrecognised or legacy blobs exactly as they arrived.
"""
import json
import logging
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Type, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .states import ProviderRole

logger = logging.getLogger(__name__)


class PayloadModel(BaseModel):
    """Base for payload shapes: accepts camelCase keys and keeps extra keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class ItemLine(PayloadModel):
    """A single dispensed medicine, test or service line."""
    id: Optional[str] = None
    name: str = Field(..., validation_alias=AliasChoices("name", "medicineName", "testName"))
    price: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("price", "finalPrice", "pharmacistPrice"),
    )
    reference_price: Optional[Decimal] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("reference_price", "referencePrice", "unionPrice"),
        serialization_alias="referencePrice",
        description="Catalog/union price for the item; caps the entered price",
    )
    dosage: Optional[str] = None
    quantity: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("quantity", "calculatedQuantity"),
    )
    form: Optional[str] = None
    times_per_day: Optional[int] = None
    duration: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class DoctorPayload(PayloadModel):
    provider_role: ClassVar[ProviderRole] = ProviderRole.DOCTOR

    provider_name: Optional[str] = None
    doctor_name: Optional[str] = None
    specialization: Optional[str] = None
    notes: Optional[str] = None


class PharmacistPayload(PayloadModel):
    provider_role: ClassVar[ProviderRole] = ProviderRole.PHARMACIST

    prescription_id: Optional[str] = None
    doctor_name: Optional[str] = None
    is_chronic: bool = False
    items: List[ItemLine] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("prescription_id", mode="before")
    @classmethod
    def _coerce_prescription_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class _TestEntryPayload(PayloadModel):
    test_id: Optional[str] = None
    test_name: Optional[str] = None
    items: List[ItemLine] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("test_id", mode="before")
    @classmethod
    def _coerce_test_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class LabPayload(_TestEntryPayload):
    provider_role: ClassVar[ProviderRole] = ProviderRole.LAB_TECH


class RadiologyPayload(_TestEntryPayload):
    provider_role: ClassVar[ProviderRole] = ProviderRole.RADIOLOGIST


class UnknownPayload(BaseModel):
    """Unrecognised or legacy payload, preserved verbatim."""
    raw: Any = None


RoleSpecificPayload = Union[
    DoctorPayload,
    PharmacistPayload,
    LabPayload,
    RadiologyPayload,
    UnknownPayload,
]

PAYLOAD_TYPES: Dict[ProviderRole, Type[PayloadModel]] = {
    ProviderRole.DOCTOR: DoctorPayload,
    ProviderRole.PHARMACIST: PharmacistPayload,
    ProviderRole.LAB_TECH: LabPayload,
    ProviderRole.RADIOLOGIST: RadiologyPayload,
}

_PAYLOAD_CLASSES = tuple(PAYLOAD_TYPES.values()) + (UnknownPayload,)


def parse_role_payload(provider_role: ProviderRole, data: Any) -> RoleSpecificPayload:
    """
    Turn a raw payload (dict, JSON string or None) into its typed variant.

    Anything that does not fit the shape for ``provider_role`` becomes an
    UnknownPayload holding the original value.
    """
    if isinstance(data, _PAYLOAD_CLASSES):
        return data

    model = PAYLOAD_TYPES.get(ProviderRole(provider_role))
    if data is None:
        return model() if model else UnknownPayload(raw=None)

    raw = data
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            logger.warning(f"Unparseable {provider_role} payload kept as raw text")
            return UnknownPayload(raw=raw)

    if not isinstance(data, dict) or model is None:
        return UnknownPayload(raw=raw)

    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(
            f"{provider_role} payload does not match its known shape "
            f"({e.error_count()} errors); keeping it as raw data"
        )
        return UnknownPayload(raw=raw)


def dump_role_payload(payload: RoleSpecificPayload) -> Any:
    """Serialize a payload back to its wire form (camelCase keys)."""
    if isinstance(payload, UnknownPayload):
        return payload.raw
    return payload.model_dump(mode="json", by_alias=True, exclude_none=True)


def payload_items(payload: RoleSpecificPayload) -> List[ItemLine]:
    """Line items carried by a payload, empty for shapes without items."""
    if isinstance(payload, UnknownPayload):
        return []
    return list(getattr(payload, "items", None) or [])
