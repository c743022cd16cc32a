"""Cost report schemas for the external cost analyzer output.

The analyzer emits one JSON document per analyzed commit. These Pydantic
models validate that document and normalize the optional parts so that the
rest of the pipeline never has to special-case missing collections.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResourceItem(BaseModel):
    """One priced resource within a stack."""
    model_config = ConfigDict(allow_inf_nan=False)

    service: str = Field(..., description="Pricing service identifier, e.g. AmazonEC2")
    logical_id: str = Field(..., description="Logical ID of the resource in its stack")
    monthly_usd: float = Field(default=0.0, description="Estimated monthly cost in USD")
    cdk_path: Optional[str] = Field(default=None, description="CDK construct path of the resource")
    notes: Optional[List[str]] = Field(default=None, description="Free-text pricing notes")

    @field_validator('monthly_usd', mode='before')
    @classmethod
    def default_cost(cls, v):
        """Treat an explicit null cost as 0."""
        return 0.0 if v is None else v


class Stack(BaseModel):
    """A deployable stack and its priced resources."""
    model_config = ConfigDict(allow_inf_nan=False)

    name: str
    total_monthly_usd: Optional[float] = None
    items: List[ResourceItem] = Field(default_factory=list)

    @field_validator('items', mode='before')
    @classmethod
    def default_items(cls, v):
        """Treat an explicit null as an empty item list."""
        return [] if v is None else v


class CostReport(BaseModel):
    """Top-level analyzer report for a single commit."""
    model_config = ConfigDict(allow_inf_nan=False)

    grand_total_usd: Optional[float] = None
    stacks: List[Stack] = Field(default_factory=list)

    @field_validator('stacks', mode='before')
    @classmethod
    def default_stacks(cls, v):
        """Treat an explicit null as an empty stack list."""
        return [] if v is None else v
