from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.domain.errors import CategoryTypeMismatch, ReferentialDeleteBlocked
from budgetup.domain.types import CategoryType

logger = logging.getLogger(__name__)

# Greens for income, reds/oranges for expense, assigned round-robin
DEFAULT_PALETTE: dict[CategoryType, tuple[str, ...]] = {
    CategoryType.INCOME: ("#10B981", "#059669", "#047857", "#065F46", "#064E3B"),
    CategoryType.EXPENSE: (
        "#EF4444",
        "#DC2626",
        "#B91C1C",
        "#991B1B",
        "#7F1D1D",
        "#F97316",
        "#EA580C",
        "#C2410C",
        "#9A3412",
        "#7C2D12",
        "#6B7280",
    ),
}

DEFAULT_CATEGORIES: tuple[tuple[str, CategoryType], ...] = (
    ("Ventas", CategoryType.INCOME),
    ("Servicios", CategoryType.INCOME),
    ("Ingresos por Intereses", CategoryType.INCOME),
    ("Otros Ingresos", CategoryType.INCOME),
    ("Nómina", CategoryType.EXPENSE),
    ("Renta", CategoryType.EXPENSE),
    ("Servicios Públicos", CategoryType.EXPENSE),
    ("Impuestos", CategoryType.EXPENSE),
    ("Suministros de Oficina", CategoryType.EXPENSE),
    ("Marketing y Publicidad", CategoryType.EXPENSE),
    ("Transporte", CategoryType.EXPENSE),
    ("Mantenimiento", CategoryType.EXPENSE),
    ("Seguros", CategoryType.EXPENSE),
    ("Gastos Bancarios", CategoryType.EXPENSE),
    ("Otros Gastos", CategoryType.EXPENSE),
)


def default_color(category_type: CategoryType, position: int) -> str:
    palette = DEFAULT_PALETTE[CategoryType(category_type)]
    return palette[position % len(palette)]


class CategoryService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, category_id: int) -> models.Category:
        category = self.db.get(models.Category, category_id)
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    def _ensure_unique_name(
        self,
        organization_id: int,
        name: str,
        category_type: CategoryType,
        exclude_id: Optional[int] = None,
    ) -> None:
        query = self.db.query(models.Category).filter(
            models.Category.organization_id == organization_id,
            models.Category.type == category_type,
            func.lower(models.Category.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.filter(models.Category.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=409,
                detail=f"A {category_type.value} category with that name already exists",
            )

    def _count_of_type(self, organization_id: int, category_type: CategoryType) -> int:
        return (
            self.db.query(models.Category)
            .filter(
                models.Category.organization_id == organization_id,
                models.Category.type == category_type,
            )
            .count()
        )

    def create(self, organization_id: int, data: Mapping[str, Any]) -> models.Category:
        category_type = CategoryType(data["type"])
        self._ensure_unique_name(organization_id, data["name"], category_type)
        color = data.get("color") or default_color(category_type, self._count_of_type(organization_id, category_type))
        category = models.Category(
            organization_id=organization_id,
            name=data["name"],
            type=category_type,
            color=color.upper(),
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info("created %s category %s in organization %s", category_type.value, category.id, organization_id)
        return category

    def seed_defaults(self, organization_id: int) -> list[models.Category]:
        """Add the stock income/expense categories to a new organization.

        Flushes only; the caller owns the commit.
        """
        created = []
        positions = {CategoryType.INCOME: 0, CategoryType.EXPENSE: 0}
        for name, category_type in DEFAULT_CATEGORIES:
            category = models.Category(
                organization_id=organization_id,
                name=name,
                type=category_type,
                color=default_color(category_type, positions[category_type]),
            )
            positions[category_type] += 1
            self.db.add(category)
            created.append(category)
        self.db.flush()
        return created

    def reference_count(self, category_id: int) -> int:
        return (
            self.db.query(models.Transaction)
            .filter(models.Transaction.category_id == category_id)
            .count()
        )

    def update(self, category: models.Category, changes: Mapping[str, Any]) -> models.Category:
        new_type = CategoryType(changes["type"]) if changes.get("type") is not None else category.type
        new_name = changes.get("name") or category.name
        if new_type != category.type:
            references = self.reference_count(category.id)
            if references:
                logger.warning(
                    "refused to retype category %s: %d transaction(s) reference it",
                    category.id,
                    references,
                )
                raise CategoryTypeMismatch(category.type.value, new_type.value)
        if new_type != category.type or new_name.lower() != category.name.lower():
            self._ensure_unique_name(category.organization_id, new_name, new_type, exclude_id=category.id)

        category.name = new_name
        category.type = new_type
        if changes.get("color") is not None:
            category.color = changes["color"].upper()
        self.db.commit()
        self.db.refresh(category)
        logger.info("updated category %s in organization %s", category.id, category.organization_id)
        return category

    def delete(self, category: models.Category) -> None:
        references = self.reference_count(category.id)
        if references:
            logger.warning("refused to delete category %s: %d transaction(s) reference it", category.id, references)
            raise ReferentialDeleteBlocked("category", category.id, references)
        category_id = category.id
        self.db.delete(category)
        self.db.commit()
        logger.info("deleted category %s", category_id)
