"""
Pydantic models for rule definitions and rule packages
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


# A rule expression is plain JSON data: {"op": [operands...]}, {"var": "field"} or a literal
RuleExpression = Any

RuleKind = Literal["eligibility", "benefit_amount", "document_requirements", "conditional"]


class RuleVersion(BaseModel):
    """Semantic version of a rule or rule package"""
    major: int = Field(..., ge=0, description="Major version number")
    minor: int = Field(..., ge=0, description="Minor version number")
    patch: int = Field(0, ge=0, description="Patch version number")
    label: Optional[str] = Field(None, max_length=50, description="Version label (e.g. beta)")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, version: str) -> "RuleVersion":
        """Parse a version string such as '1.2.3' or '1.2.3.beta'"""
        parts = version.split(".")
        if len(parts) < 2 or len(parts) > 4:
            raise ValueError(f"Invalid version format: {version}")
        major, minor = parts[0], parts[1]
        patch = parts[2] if len(parts) > 2 else "0"
        label = parts[3] if len(parts) > 3 else None
        return cls(major=int(major), minor=int(minor), patch=int(patch), label=label)

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.label}" if self.label else base


class DocumentRequirement(BaseModel):
    """Document a person needs when applying for a program"""
    id: str = Field(..., min_length=1, max_length=100, description="Stable document identifier")
    name: str = Field(..., min_length=1, max_length=200, description="Document name")
    description: Optional[str] = Field(None, max_length=500)
    required: bool = Field(True, description="Is this document required?")
    alternatives: List[str] = Field(default_factory=list, description="Acceptable alternatives")
    where: Optional[str] = Field(None, max_length=500, description="Where to obtain the document")

    model_config = ConfigDict(frozen=True)


class NextStep(BaseModel):
    """Suggested action after an eligibility determination"""
    step: str = Field(..., min_length=1, max_length=500, description="Step description")
    url: Optional[str] = Field(None, description="URL for this step")
    priority: Optional[Literal["high", "medium", "low"]] = Field(None)
    estimated_time: Optional[str] = Field(None, alias="estimatedTime", max_length=100)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class RuleDefinition(BaseModel):
    """One declarative eligibility rule and its metadata"""
    id: str = Field(..., min_length=1, max_length=128, description="Unique rule identifier")
    program_id: str = Field(..., alias="programId", min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=200, description="Rule name")
    description: Optional[str] = Field(None, max_length=2000)
    rule_logic: RuleExpression = Field(..., alias="ruleLogic", description="JSON Logic expression")
    rule_type: RuleKind = Field("eligibility", alias="ruleType", description="Only eligibility rules are scored")
    explanation: Optional[str] = Field(None, max_length=2000, description="Plain language explanation")
    required_fields: List[str] = Field(default_factory=list, alias="requiredFields")
    required_documents: List[DocumentRequirement] = Field(default_factory=list, alias="requiredDocuments")
    next_steps: List[NextStep] = Field(default_factory=list, alias="nextSteps")
    version: Optional[RuleVersion] = Field(None)
    active: bool = Field(True, description="Is rule currently active")
    draft: bool = Field(False, description="Is this a draft rule")
    priority: int = Field(0, ge=0, description="Higher priority rules are evaluated first")
    is_hard_stop: bool = Field(
        False,
        alias="isHardStop",
        description="A failure of this rule disqualifies the person regardless of other rules",
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "snap-federal-gross-income",
                "programId": "snap-federal",
                "name": "SNAP gross income test",
                "ruleLogic": {
                    "snap_income_eligible": [{"var": "householdIncome"}, {"var": "householdSize"}]
                },
                "ruleType": "eligibility",
                "explanation": "Household gross income is at or below 130% of the poverty line",
                "requiredFields": ["householdIncome", "householdSize"],
                "requiredDocuments": [{"id": "pay-stubs", "name": "Recent pay stubs", "required": True}],
                "nextSteps": [{"step": "Apply online through your state SNAP office", "priority": "high"}],
                "active": True,
            }
        },
    )

    @field_validator("rule_logic")
    @classmethod
    def validate_rule_logic(cls, v):
        if v is None:
            raise ValueError("ruleLogic cannot be null")
        return v

    @property
    def is_scored(self) -> bool:
        """Whether this rule takes part in pass/fail scoring"""
        return self.active and not self.draft and self.rule_type == "eligibility"


class RulePackageMetadata(BaseModel):
    """Package-level metadata for one jurisdiction's rules"""
    id: str = Field(..., min_length=1, max_length=128, description="Package identifier")
    name: str = Field(..., min_length=1, max_length=200, description="Package name")
    description: Optional[str] = Field(None, max_length=2000)
    version: RuleVersion = Field(..., description="Package version")
    jurisdiction: str = Field("US-FEDERAL", max_length=100, description="Jurisdiction code")
    programs: List[str] = Field(default_factory=list, description="Included program IDs")

    model_config = ConfigDict(frozen=True)

    @field_validator("version", mode="before")
    @classmethod
    def parse_version_string(cls, v):
        if isinstance(v, str):
            return RuleVersion.parse(v)
        return v


class RulePackage(BaseModel):
    """Versioned, named collection of rule definitions"""
    metadata: RulePackageMetadata
    rules: List[RuleDefinition] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def rules_by_program(self) -> Dict[str, List[RuleDefinition]]:
        """Group active, non-draft rules by program, keeping package order"""
        grouped: Dict[str, List[RuleDefinition]] = {}
        for rule in self.rules:
            if not rule.active or rule.draft:
                continue
            grouped.setdefault(rule.program_id, []).append(rule)
        return grouped
