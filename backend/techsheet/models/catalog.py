from __future__ import annotations

from ..extensions import db
from techsheet.time_utils import to_utc_z


PRODUCT_TYPES = ("cosmetic", "supplement")

# Free-text regulatory/content columns on products (order matches the datasheet)
PRODUCT_TEXT_FIELDS = (
    "name", "subtitle", "code", "ref", "date", "content", "category",
    "packaging", "accessory", "batch", "cpnp", "auth_ministry",
    "ingredients", "tests", "certifications", "clinical_trials", "claims",
    "natural_actives", "functional_actives", "characteristics", "usage",
    "warnings", "conservation_method", "special_warnings",
)

COSMETIC_DETAIL_FIELDS = (
    "color", "fragrance", "sensorial", "absorbability", "ph", "viscosity",
    "cbt", "yeast_and_mold", "escherichia_coli", "pseudomonas",
)

SUPPLEMENT_DETAIL_FIELDS = ("nutritional_info", "indications", "dosage")


class Group(db.Model):
    """
    Named visibility partition over products.

    A product belongs to at most one group. Deleting a group leaves its
    products in place, ungrouped.
    """
    __tablename__ = "groups"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Group id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Technical datasheet header shared by cosmetics and supplements.

    is_complete is derived from the required field set and recomputed by the
    products service after every write. Clients never set it.

    Approval (is_approved, approved_by_user_id, approved_at) is independent
    of completeness and only changed through the approval service.

    version_id enables optimistic locking so concurrent writers cannot
    silently overwrite each other between the write and the completeness
    recomputation.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_type_name", "type", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)

    subtitle = db.Column(db.String(255), nullable=True)
    code = db.Column(db.String(64), nullable=True)
    ref = db.Column(db.String(255), nullable=True)
    date = db.Column(db.String(32), nullable=True)
    content = db.Column(db.String(128), nullable=True)
    category = db.Column(db.String(255), nullable=True)
    packaging = db.Column(db.Text, nullable=True)
    accessory = db.Column(db.Text, nullable=True)
    batch = db.Column(db.String(64), nullable=True)
    cpnp = db.Column(db.String(64), nullable=True)
    auth_ministry = db.Column(db.String(128), nullable=True)
    ingredients = db.Column(db.Text, nullable=True)
    tests = db.Column(db.Text, nullable=True)
    certifications = db.Column(db.Text, nullable=True)
    clinical_trials = db.Column(db.Text, nullable=True)
    claims = db.Column(db.Text, nullable=True)
    natural_actives = db.Column(db.Text, nullable=True)
    functional_actives = db.Column(db.Text, nullable=True)
    characteristics = db.Column(db.Text, nullable=True)
    usage = db.Column(db.Text, nullable=True)
    warnings = db.Column(db.Text, nullable=True)
    conservation_method = db.Column(db.Text, nullable=True)
    special_warnings = db.Column(db.Text, nullable=True)

    group_id = db.Column(db.Integer, db.ForeignKey("groups.id", ondelete="SET NULL"), nullable=True, index=True)

    is_complete = db.Column(db.Boolean, nullable=False, default=False)

    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Unvalidated draft; never merged into the committed columns
    last_autosave = db.Column(db.JSON, nullable=True)
    last_autosave_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    group = db.relationship("Group", backref=db.backref("products", lazy=True))
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])
    cosmetic_details = db.relationship(
        "CosmeticDetails",
        uselist=False,
        back_populates="product",
        cascade="all, delete-orphan",
    )
    supplement_details = db.relationship(
        "SupplementDetails",
        uselist=False,
        back_populates="product",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} type={self.type!r} name={self.name!r}>"

    @property
    def details(self):
        """The detail record matching this product's type, or None."""
        if self.type == "cosmetic":
            return self.cosmetic_details
        if self.type == "supplement":
            return self.supplement_details
        return None

    def to_dict(self) -> dict:
        data = {"id": self.id, "type": self.type}
        for field in PRODUCT_TEXT_FIELDS:
            data[field] = getattr(self, field)
        data.update({
            "group_id": self.group_id,
            "is_complete": self.is_complete,
            "is_approved": self.is_approved,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "last_autosave_at": to_utc_z(self.last_autosave_at) if self.last_autosave_at else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        })
        return data


class CosmeticDetails(db.Model):
    """Cosmetic-only analyses. Exactly one row per cosmetic product."""
    __tablename__ = "cosmetic_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    color = db.Column(db.String(255), nullable=True)
    fragrance = db.Column(db.String(255), nullable=True)
    sensorial = db.Column(db.Text, nullable=True)
    absorbability = db.Column(db.String(255), nullable=True)
    ph = db.Column(db.String(32), nullable=True)
    viscosity = db.Column(db.String(64), nullable=True)
    cbt = db.Column(db.String(128), nullable=True)
    yeast_and_mold = db.Column(db.String(128), nullable=True)
    escherichia_coli = db.Column(db.String(128), nullable=True)
    pseudomonas = db.Column(db.String(128), nullable=True)

    product = db.relationship("Product", back_populates="cosmetic_details")

    def to_dict(self) -> dict:
        data = {"id": self.id, "product_id": self.product_id}
        for field in COSMETIC_DETAIL_FIELDS:
            data[field] = getattr(self, field)
        return data


class SupplementDetails(db.Model):
    """Supplement-only sections. Exactly one row per supplement product."""
    __tablename__ = "supplement_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    nutritional_info = db.Column(db.Text, nullable=True)
    indications = db.Column(db.Text, nullable=True)
    dosage = db.Column(db.Text, nullable=True)

    product = db.relationship("Product", back_populates="supplement_details")

    def to_dict(self) -> dict:
        data = {"id": self.id, "product_id": self.product_id}
        for field in SUPPLEMENT_DETAIL_FIELDS:
            data[field] = getattr(self, field)
        return data


class FieldSuggestion(db.Model):
    """
    Previously seen value for a form field, used for autocomplete.

    Advisory only: the table can be rebuilt from products at any time.
    """
    __tablename__ = "field_suggestions"
    __table_args__ = (
        db.UniqueConstraint("field", "value", name="uq_field_suggestions_field_value"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    field = db.Column(db.String(64), nullable=False, index=True)
    value = db.Column(db.Text, nullable=False)
    # value.casefold(); suggest() matches against this column
    value_folded = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
