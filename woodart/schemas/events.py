"""Server-sent event payload schemas."""

from typing import Any

from woodart.schemas.common import CamelModel

DESIGN_UPDATED = "designUpdated"


class DesignUpdatedEvent(CamelModel):
    """Live listing fields pushed to browsers when a design changes."""

    design_id: str
    quantity: int
    price: float
    item_name: str | None = None
    description: str | None = None
    material: str | None = None
    board_size: str | None = None
    board_color: str | None = None
    board_thickness: str | None = None

    @classmethod
    def from_design(cls, design: dict[str, Any]) -> "DesignUpdatedEvent":
        """Build the event from a designs table row."""
        return cls(
            design_id=str(design["id"]),
            quantity=design["quantity"],
            price=design["price"],
            item_name=design.get("item_name"),
            description=design.get("description"),
            material=design.get("material"),
            board_size=design.get("board_size"),
            board_color=design.get("board_color"),
            board_thickness=design.get("board_thickness"),
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize with client-facing (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)
