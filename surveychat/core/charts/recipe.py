"""Chart recipe models: the contract between recipe generation and rendering."""

from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Union
from enum import Enum
import logging

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator, model_validator

from surveychat.utils.exceptions import RecipeValidationException

logger = logging.getLogger(__name__)


class ChartType(str, Enum):
    """Enumeration of supported chart types."""

    BAR = "bar"
    PIE = "pie"
    SCATTER = "scatter"
    HISTOGRAM = "histogram"


class Aggregation(str, Enum):
    """Enumeration of aggregation modes."""

    COUNT = "count"
    AVERAGE = "average"
    SUM = "sum"
    NONE = "none"


# Spellings the model tends to use instead of the canonical names
_AGGREGATION_SYNONYMS = {
    "avg": "average",
    "mean": "average",
    "total": "sum",
    "frequency": "count",
}


class _RecipeBase(BaseModel):
    """Fields shared by every recipe variant."""

    x_column: str = Field(alias="xColumn", min_length=1)
    title: Optional[str] = None
    description: Optional[str] = None

    class Config:
        frozen = True
        populate_by_name = True
        extra = "ignore"

    @property
    def is_categorical(self) -> bool:
        return self.type in (ChartType.BAR.value, ChartType.PIE.value)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CategoricalRecipe(_RecipeBase):
    """Bar or pie chart grouping rows by ``xColumn``."""

    type: Literal["bar", "pie"]
    y_column: Optional[str] = Field(default=None, alias="yColumn")
    aggregation: Aggregation = Aggregation.COUNT

    @model_validator(mode="before")
    @classmethod
    def _normalise_aggregation(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)
        aggregation = data.get("aggregation") or Aggregation.COUNT.value
        if isinstance(aggregation, str):
            aggregation = aggregation.strip().lower()
            aggregation = _AGGREGATION_SYNONYMS.get(aggregation, aggregation)
            if aggregation == Aggregation.NONE.value:
                aggregation = Aggregation.COUNT.value
        data["aggregation"] = aggregation

        # counts never read the y column
        if aggregation == Aggregation.COUNT.value:
            data.pop("yColumn", None)
            data.pop("y_column", None)
        return data

    @model_validator(mode="after")
    def _check_y_column(self) -> "CategoricalRecipe":
        if self.aggregation in (Aggregation.AVERAGE, Aggregation.SUM) and not self.y_column:
            raise ValueError(
                f"yColumn is required for {self.aggregation.value} aggregation"
            )
        return self


class ScatterRecipe(_RecipeBase):
    """Scatter plot of raw numeric pairs."""

    type: Literal["scatter"]
    y_column: str = Field(alias="yColumn", min_length=1)
    aggregation: Literal["none"] = "none"

    @field_validator("aggregation", mode="before")
    @classmethod
    def _no_aggregation(cls, value: Any) -> str:
        return Aggregation.NONE.value


class HistogramRecipe(_RecipeBase):
    """Histogram of raw numeric samples; binning happens at render time."""

    type: Literal["histogram"]
    y_column: Optional[str] = Field(default=None, alias="yColumn")
    aggregation: Literal["none"] = "none"

    @field_validator("aggregation", mode="before")
    @classmethod
    def _no_aggregation(cls, value: Any) -> str:
        return Aggregation.NONE.value

    @field_validator("y_column", mode="before")
    @classmethod
    def _no_y_column(cls, value: Any) -> None:
        return None


Recipe = Annotated[
    Union[CategoricalRecipe, ScatterRecipe, HistogramRecipe],
    Field(discriminator="type"),
]

_recipe_adapter = TypeAdapter(Recipe)


def parse_recipe(data: Dict[str, Any]) -> Recipe:
    """
    Validate a raw recipe mapping into its typed variant.

    Args:
        data: Recipe as received on the wire

    Returns:
        Typed recipe

    Raises:
        RecipeValidationException: If the recipe is malformed
    """
    if not isinstance(data, dict):
        raise RecipeValidationException("Recipe must be a JSON object")

    payload = dict(data)
    chart_type = payload.get("type")
    if isinstance(chart_type, str):
        payload["type"] = chart_type.strip().lower()

    try:
        return _recipe_adapter.validate_python(payload)
    except ValidationError as e:
        raise RecipeValidationException(f"Invalid chart recipe: {e.errors()[0]['msg']}")


def parse_recipes(items: Iterable[Any]) -> List[Recipe]:
    """Validate a batch of recipes, skipping the ones that fail."""
    recipes: List[Recipe] = []
    for index, item in enumerate(items):
        try:
            recipes.append(parse_recipe(item))
        except RecipeValidationException as e:
            logger.warning(f"Dropping recipe {index}: {e.detail}")
    return recipes
