"""Variation editor used when adding a product in the admin console."""
from dataclasses import dataclass, field
from typing import List

from schemas import ProductType, SizeDetail


@dataclass
class Variation:
    name: str
    options: List[str] = field(default_factory=list)

    def add_option(self, value: str = "") -> int:
        self.options.append(value)
        return len(self.options) - 1

    def change_option(self, index: int, value: str) -> None:
        self.options[index] = value

    def remove_option(self, index: int) -> str:
        return self.options.pop(index)

    def clean_options(self) -> List[str]:
        return list(dict.fromkeys(o.strip() for o in self.options if o.strip()))


def build_types(color_variation: Variation, size_variation: Variation,
                price: float, in_storage: int = 0) -> List[ProductType]:
    """Expand color x size options into product types sharing one price and stock."""
    sizes = size_variation.clean_options()
    return [
        ProductType(
            color_name=color,
            details=[SizeDetail(size_name=size, price=price, in_storage=in_storage) for size in sizes],
        )
        for color in color_variation.clean_options()
    ]
