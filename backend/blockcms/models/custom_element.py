from typing import Dict, List

from sqlalchemy import select

from blockcms.extensions import db
from blockcms.domain.custom_elements import CustomElementDefinition
from .base import BaseModel


class CustomElement(BaseModel):
    __tablename__ = "custom_elements"

    type = db.Column(db.String(100), nullable=False, unique=True, index=True)
    label = db.Column(db.JSON, nullable=True)
    description = db.Column(db.JSON, nullable=True)
    icon = db.Column(db.String(100), nullable=True)
    category = db.Column(db.String(50), nullable=False, default="content", index=True)
    can_have_children = db.Column(db.Boolean, nullable=False, default=False)
    fields = db.Column(db.JSON, nullable=False, default=list)
    default_data = db.Column(db.JSON, nullable=False, default=dict)
    preview_template = db.Column(db.Text, nullable=True)
    css_class = db.Column(db.String(200), nullable=True)
    is_system = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)

    def to_definition(self) -> CustomElementDefinition:
        return CustomElementDefinition(
            type=self.type,
            label=self.label,
            description=self.description,
            icon=self.icon,
            category=self.category,
            can_have_children=bool(self.can_have_children),
            fields=list(self.fields or []),
            default_data=dict(self.default_data or {}),
            preview_template=self.preview_template,
            css_class=self.css_class,
            is_system=bool(self.is_system),
            order=self.order or 0,
        )

    def apply_definition(self, definition: CustomElementDefinition) -> None:
        for key, value in definition.to_dict().items():
            setattr(self, key, value)


class SqlDefinitionSource:
    """
    Definition source backed by the `custom_elements` table.

    Writes are flushed into the current session; committing is left to the
    caller's transaction.
    """

    def load_all(self) -> List[CustomElementDefinition]:
        rows = db.session.execute(select(CustomElement)).scalars().all()
        return [row.to_definition() for row in rows]

    def _row(self, type_name: str):
        return db.session.execute(
            select(CustomElement).where(CustomElement.type == type_name)
        ).scalar_one_or_none()

    def insert(self, definition: CustomElementDefinition) -> None:
        row = CustomElement()
        row.apply_definition(definition)
        db.session.add(row)
        db.session.flush()

    def save(self, definition: CustomElementDefinition) -> None:
        row = self._row(definition.type)
        if row is None:
            row = CustomElement()
            db.session.add(row)
        row.apply_definition(definition)
        db.session.flush()

    def remove(self, type_name: str) -> None:
        row = self._row(type_name)
        if row is not None:
            db.session.delete(row)
            db.session.flush()

    def set_orders(self, orders: Dict[str, int]) -> None:
        if not orders:
            return
        rows = db.session.execute(
            select(CustomElement).where(CustomElement.type.in_(list(orders)))
        ).scalars().all()
        for row in rows:
            row.order = orders[row.type]
        db.session.flush()
