"""
Pydantic schemas for source contracts, fetched pages and flagged results
"""

import enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any, Union


class RiskLevel(str, enum.Enum):
    """Risk level assigned by the classifier"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ============================================================================
# Source records
# ============================================================================

class Contract(BaseModel):
    """
    One record of the paginated contracts dataset.

    Only the identity and value fields are modelled; the full record is kept
    in ``payload`` and handed to the classifier unmodified.
    """

    model_config = ConfigDict(frozen=True)

    procurement_id: str = Field(..., min_length=1)
    contract_value: Optional[Union[str, float]] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("procurement_id", mode="before")
    @classmethod
    def coerce_procurement_id(cls, v):
        """Identifiers are compared as strings"""
        if v is None:
            return v
        return str(v).strip()

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Contract":
        return cls(
            procurement_id=record.get("procurement_id"),
            contract_value=record.get("contract_value"),
            payload=dict(record),
        )

    @property
    def identifier(self) -> str:
        return self.procurement_id


class ContractPage(BaseModel):
    """One page returned by the source at a given offset"""

    offset: int = Field(..., ge=0)
    success: bool
    records: List[Contract] = Field(default_factory=list)
    total: Optional[int] = None
    next_link: Optional[str] = None
    raw_count: Optional[int] = None

    @property
    def fetched(self) -> int:
        """Records on the page as served, including ones skipped as invalid"""
        return self.raw_count if self.raw_count is not None else len(self.records)

    @property
    def has_more(self) -> bool:
        return self.success and self.fetched > 0

    @property
    def is_end_of_stream(self) -> bool:
        return not self.has_more


# ============================================================================
# Classifier output
# ============================================================================

class RiskFactors(BaseModel):
    """Free-text findings grouped into fixed categories"""

    model_config = ConfigDict(frozen=True, extra="allow")

    procurement_issues: List[str] = Field(default_factory=list)
    financial_issues: List[str] = Field(default_factory=list)
    conflict_of_interest: List[str] = Field(default_factory=list)
    timeline_issues: List[str] = Field(default_factory=list)
    public_interest_factors: List[str] = Field(default_factory=list)

    @field_validator(
        "procurement_issues",
        "financial_issues",
        "conflict_of_interest",
        "timeline_issues",
        "public_interest_factors",
        mode="before",
    )
    @classmethod
    def clean_findings(cls, v):
        """Ensure each category is a list of strings"""
        if v is None:
            return []
        if isinstance(v, str):
            return [v.strip()] if v.strip() else []
        if isinstance(v, list):
            return [str(item).strip() for item in v if str(item).strip()]
        return v


class FlaggedContract(BaseModel):
    """
    A contract the classifier flagged for scrutiny.

    One instance is written per line of the result log. Field names are the
    on-disk format; keys the classifier adds beyond these are preserved.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    contract_id: str = Field(..., min_length=1)
    vendor_name: Optional[str] = None
    value: Optional[str] = None
    description: Optional[str] = None
    original_value: Optional[str] = None
    amendment_value: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    number_of_bids: Optional[str] = None
    procurement_type: Optional[str] = None
    reason_for_flag: Optional[str] = None
    risk_level: RiskLevel
    risk_factors: RiskFactors = Field(default_factory=RiskFactors)

    @field_validator("contract_id", mode="before")
    @classmethod
    def coerce_contract_id(cls, v):
        """Compared against Contract.procurement_id, so cleaned the same way"""
        if v is None or isinstance(v, bool):
            return v
        if isinstance(v, (str, int, float)):
            return str(v).strip()
        return v

    @field_validator(
        "vendor_name",
        "value",
        "description",
        "original_value",
        "amendment_value",
        "start_date",
        "end_date",
        "number_of_bids",
        "procurement_type",
        "reason_for_flag",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v):
        """The classifier sometimes answers numbers where strings are expected"""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("risk_level", mode="before")
    @classmethod
    def normalize_risk_level(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("risk_factors", mode="before")
    @classmethod
    def default_risk_factors(cls, v):
        return {} if v is None else v

    @property
    def identifier(self) -> str:
        return self.contract_id

    def to_ndjson_line(self) -> str:
        """Serialize as one compact JSON line (no trailing newline)"""
        return self.model_dump_json()
