"""Tests for ProductRepository operations."""

import pytest

from maintrack.database.product_repository import ADD, REMOVE
from maintrack.errors import NotFoundError, ValidationError
from maintrack.models.task_factory import create_product_base
from maintrack.models.user import User


class TestProductRepository:

    def test_create_and_get(self, product_repository, test_product):
        fetched = product_repository.get(test_product.id)
        assert fetched.name == "Espresso Machine"
        assert fetched.notification_preferences == [1, 0]
        assert fetched.task_ids == []

    def test_list_for_user_filters(self, product_repository, test_user_id, test_product, clock):
        product_repository.create(
            create_product_base(user_id=test_user_id, name="Road Bike", now=clock(), category="outdoor")
        )

        kitchen, total = product_repository.list_for_user(test_user_id, category="kitchen")
        assert total == 1
        assert kitchen[0].id == test_product.id

        found, total = product_repository.list_for_user(test_user_id, search="bike")
        assert total == 1
        assert found[0].name == "Road Bike"

        assert sorted(product_repository.list_categories(test_user_id)) == ["kitchen", "outdoor"]

    def test_update_task_refs_add_is_idempotent(self, product_repository, test_product):
        product_repository.update_task_refs(test_product.id, ADD, "t1")
        product = product_repository.update_task_refs(test_product.id, ADD, "t1")
        assert product.task_ids == ["t1"]

    def test_remove_clears_pointers(self, product_repository, test_product):
        product_repository.update_task_refs(test_product.id, ADD, "t1")
        product_repository.save(
            product_repository.get(test_product.id).model_copy(
                update={"last_overall_maintenance_id": "t1", "next_overall_maintenance_id": "t1"}
            )
        )

        product = product_repository.update_task_refs(test_product.id, REMOVE, "t1")

        assert product.task_ids == []
        assert product.last_overall_maintenance_id is None
        assert product.next_overall_maintenance_id is None

    def test_unknown_ref_operation(self, product_repository, test_product):
        with pytest.raises(ValidationError):
            product_repository.update_task_refs(test_product.id, "toggle", "t1")

    def test_refs_on_missing_product(self, product_repository):
        with pytest.raises(NotFoundError):
            product_repository.update_task_refs("missing", ADD, "t1")

    def test_pull_task_from_all(self, product_repository, test_product, test_user_id, clock):
        other = product_repository.create(create_product_base(user_id=test_user_id, name="Kettle", now=clock()))
        product_repository.update_task_refs(test_product.id, ADD, "shared")
        product_repository.update_task_refs(other.id, ADD, "shared")
        product_repository.update_task_refs(other.id, ADD, "own")

        affected = product_repository.pull_task_from_all("shared")

        assert sorted(affected) == sorted([test_product.id, other.id])
        assert product_repository.get(other.id).task_ids == ["own"]

    def test_pull_task_scoped_to_owner(self, product_repository, user_repository, test_product, test_user_id, clock):
        now = clock()
        stranger = user_repository.create(
            User(id="stranger", email="stranger@example.com", created_at=now, updated_at=now)
        )
        foreign = product_repository.create(create_product_base(user_id=stranger.id, name="Van", now=now))
        product_repository.update_task_refs(test_product.id, ADD, "t1")
        product_repository.update_task_refs(foreign.id, ADD, "t1")

        affected = product_repository.pull_task_from_all("t1", user_id=test_user_id)

        assert affected == [test_product.id]
        assert product_repository.get(test_product.id).task_ids == []
        assert product_repository.get(foreign.id).task_ids == ["t1"]

    def test_names_for(self, product_repository, test_product):
        assert product_repository.names_for([test_product.id, "missing"]) == {test_product.id: "Espresso Machine"}
        assert product_repository.names_for([]) == {}

    def test_delete(self, product_repository, test_product):
        assert product_repository.delete(test_product.id) is True
        assert product_repository.get(test_product.id) is None
