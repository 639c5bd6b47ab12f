"""Repository for Product database operations."""

import logging
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import desc

from maintrack.errors import DBError, NotFoundError, ValidationError
from maintrack.models.product import Product
from maintrack.database.models import ProductDB

logger = logging.getLogger(__name__)

ADD = "add"
REMOVE = "remove"


class ProductRepository:
    """Repository for Product database operations (the product store)."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
            raise DBError(f"Failed to {action}") from e

    def create(self, product: Product) -> Product:
        """Create a new product."""
        product_db = ProductDB.from_pydantic(product)
        self.db.add(product_db)
        self._commit(f"create product {product.id}")
        self.db.refresh(product_db)
        logger.debug(f"Created product {product.id}: {product.name[:50]}")
        return product_db.to_pydantic()

    def get(self, product_id: str) -> Optional[Product]:
        """Get product by ID."""
        product_db = self.db.query(ProductDB).filter(ProductDB.id == product_id).first()
        return product_db.to_pydantic() if product_db else None

    def list_for_user(
        self,
        user_id: str,
        *,
        category: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Product], int]:
        """Filtered page of a user's products (newest first)."""
        query = self.db.query(ProductDB).filter(ProductDB.user_id == user_id)
        if category:
            query = query.filter(ProductDB.category == category)
        if search:
            query = query.filter(ProductDB.name.ilike(f"%{search}%"))
        total = query.count()
        products_db = query.order_by(desc(ProductDB.created_at)).offset(offset).limit(limit).all()
        return [p.to_pydantic() for p in products_db], total

    def list_categories(self, user_id: str) -> List[str]:
        """Distinct non-blank categories of a user's products."""
        rows = (
            self.db.query(ProductDB.category)
            .filter(ProductDB.user_id == user_id, ProductDB.category.isnot(None))
            .distinct()
            .all()
        )
        return sorted(row[0] for row in rows if row[0] and row[0].strip())

    def save(self, product: Product) -> Product:
        """Persist all mutable fields of an existing product."""
        product_db = self.db.query(ProductDB).filter(ProductDB.id == product.id).first()
        if not product_db:
            raise NotFoundError(f"Product {product.id} not found")
        product_db.apply(product)
        self._commit(f"update product {product.id}")
        self.db.refresh(product_db)
        logger.debug(f"Updated product {product.id}: status={product_db.status}")
        return product_db.to_pydantic()

    def update_task_refs(self, product_id: str, op: str, task_id: str) -> Product:
        """Add or remove a task id in a product's task list.

        Adding is idempotent. Removing also clears the overall-maintenance
        pointers that referenced the task.
        """
        if op not in (ADD, REMOVE):
            raise ValidationError(f"Unknown task reference operation: {op}")
        product_db = self.db.query(ProductDB).filter(ProductDB.id == product_id).first()
        if not product_db:
            raise NotFoundError(f"Product {product_id} not found")

        task_ids = list(product_db.task_ids or [])
        if op == ADD:
            if task_id not in task_ids:
                task_ids.append(task_id)
        else:
            task_ids = [t for t in task_ids if t != task_id]
            if product_db.last_overall_maintenance_id == task_id:
                product_db.last_overall_maintenance_id = None
            if product_db.next_overall_maintenance_id == task_id:
                product_db.next_overall_maintenance_id = None
        product_db.task_ids = task_ids

        self._commit(f"{op} task {task_id} on product {product_id}")
        self.db.refresh(product_db)
        return product_db.to_pydantic()

    def pull_task_from_all(self, task_id: str, user_id: Optional[str] = None) -> List[str]:
        """Remove a task id from every product that references it.

        Args:
            task_id: Task to pull
            user_id: Only scan this user's products (tasks never cross owners)

        Returns:
            IDs of the products that were changed
        """
        query = self.db.query(ProductDB)
        if user_id is not None:
            query = query.filter(ProductDB.user_id == user_id)
        # JSON containment is not portable across backends; filter in Python.
        affected: List[str] = []
        for product_db in query.all():
            if task_id in (product_db.task_ids or []):
                affected.append(product_db.id)
        for product_id in affected:
            self.update_task_refs(product_id, REMOVE, task_id)
        if affected:
            logger.debug(f"Pulled task {task_id} from products {affected}")
        return affected

    def names_for(self, product_ids: List[str]) -> Dict[str, str]:
        """Map product ids to product names (missing ids are left out)."""
        if not product_ids:
            return {}
        rows = self.db.query(ProductDB.id, ProductDB.name).filter(ProductDB.id.in_(set(product_ids))).all()
        return {product_id: name for product_id, name in rows}

    def delete(self, product_id: str) -> bool:
        """Delete a product by ID."""
        product_db = self.db.query(ProductDB).filter(ProductDB.id == product_id).first()
        if not product_db:
            return False
        self.db.delete(product_db)
        self._commit(f"delete product {product_id}")
        logger.debug(f"Deleted product {product_id}")
        return True
