"""
Contract service payload schemas.

Typed views over the JSON returned by the contract service. Keys arrive in
camelCase and are exposed in snake_case; unknown keys are kept so the raw
payload can be stored as a job result unchanged.

Dependencies: pydantic
System role: Remote API response contracts
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ServiceModel(BaseModel):
    """Base for service payloads (camelCase aliases, extra keys kept)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> dict[str, Any]:
        """Dump back to the service's camelCase shape."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ContractSummary(ServiceModel):
    """Contract record returned by upload and detail endpoints."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: str | None = None
    vendor: str | None = None
    status: str | None = None
    file_url: str | None = None
    extracted_data_id: str | None = None
    risk_score: float | None = None


class ExtractionStart(ServiceModel):
    """Acknowledgement of an extraction or AI analysis start."""

    extraction_id: str | None = None
    status: str = "pending"


class ExtractionStatus(ServiceModel):
    """Extraction progress and, once available, the extracted data."""

    extraction_id: str | None = None
    status: str
    raw_text: str | None = None
    page_count: int | None = None
    quality_flag: Literal["low", "medium", "high"] | None = None
    extracted_at: datetime | None = None
    error: str | None = None
    parties: list[Any] | None = None
    amounts: list[Any] | None = None
    clauses: list[Any] | None = None

    @property
    def has_text(self) -> bool:
        return bool(self.raw_text and self.raw_text.strip())

    @property
    def has_ai_data(self) -> bool:
        return bool(self.parties or self.amounts or self.clauses)


class RiskItem(ServiceModel):
    type: str
    severity: str
    description: str
    recommendation: str | None = None
    source_text: str | None = None


class RiskAnalysis(ServiceModel):
    """Risk scoring result."""

    risk_score: float
    risks: list[RiskItem] = Field(default_factory=list)
    missing_clauses: list[str] | None = None
    compliance_issues: list[str] | None = None


class ComplianceDeviation(ServiceModel):
    rule_id: str | None = None
    rule_name: str
    severity: str
    message: str
    recommendation: str | None = None
    affected_clause: str | None = None


class ComplianceResult(ServiceModel):
    """Playbook compliance evaluation for one contract."""

    id: str | None = None
    contract_id: str | None = None
    score: float
    passed: bool
    total_rules: int = 0
    passed_rules: int = 0
    failed_rules: int = 0
    deviations: list[ComplianceDeviation] = Field(default_factory=list)
    analyzed_at: datetime | None = None
