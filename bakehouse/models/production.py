from ..extensions import db
from .mixins import StoreScopedMixin, TimestampMixin


class ProductionBatch(StoreScopedMixin, TimestampMixin, db.Model):
    __tablename__ = 'production_batch'
    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.String(100), nullable=False)
    recipe_name = db.Column(db.String(255), nullable=False, default='')
    quantity = db.Column(db.Integer, nullable=False)
    stage = db.Column(db.Integer, nullable=False, default=0)  # ProductionStage ordinal
    production_date = db.Column(db.Date, nullable=False)
    priority = db.Column(db.Integer, nullable=False, default=0)
    assigned_to = db.Column(db.String(255), nullable=True)
    source = db.Column(db.String(16), nullable=False, default='manual')  # 'manual' or 'auto'
    notes = db.Column(db.Text, nullable=True)
    version = db.Column(db.Integer, nullable=False)

    # Owned children: removing a batch removes its provenance and prep rows.
    order_sources = db.relationship(
        'BatchOrder',
        back_populates='batch',
        cascade='all, delete-orphan',
        order_by='BatchOrder.id',
    )
    prep_items = db.relationship(
        'BatchPrepItem',
        back_populates='batch',
        cascade='all, delete-orphan',
        order_by='BatchPrepItem.ingredient_name',
    )

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='ck_production_batch_quantity_positive'),
        db.Index('ix_production_batch_store_date', 'store_id', 'production_date'),
    )

    def __repr__(self):
        return f'<ProductionBatch {self.id} {self.recipe_id} x{self.quantity} stage={self.stage}>'


class BatchOrder(StoreScopedMixin, db.Model):
    """Provenance edge: one order line that funded part of a batch."""
    __tablename__ = 'batch_order'
    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey('production_batch.id'), nullable=False, index=True)
    order_id = db.Column(db.Integer, nullable=False, index=True)
    order_item_index = db.Column(db.Integer, nullable=False)
    quantity_from_order = db.Column(db.Integer, nullable=False)

    batch = db.relationship('ProductionBatch', back_populates='order_sources')

    def provenance_key(self):
        return (self.order_id, self.order_item_index, self.quantity_from_order)


class BatchPrepItem(StoreScopedMixin, db.Model):
    __tablename__ = 'batch_prep_item'
    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey('production_batch.id'), nullable=False, index=True)
    ingredient_id = db.Column(db.String(100), nullable=False)
    ingredient_name = db.Column(db.String(255), nullable=False, default='Unknown')
    required_quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(32), nullable=False, default='')
    is_prepped = db.Column(db.Boolean, nullable=False, default=False)

    batch = db.relationship('ProductionBatch', back_populates='prep_items')

    __table_args__ = (
        db.UniqueConstraint('batch_id', 'ingredient_id', name='uq_batch_prep_item_ingredient'),
    )
