"""Tests for task and product lifecycle operations."""

import pytest
from datetime import datetime, timedelta

from maintrack.errors import NotFoundError, UnauthorizedError, ValidationError
from maintrack.models.action_log import ActionType, EntityType
from maintrack.models.product import ProductStatus
from maintrack.models.task import TaskStatus
from maintrack.models.task_factory import create_product_base
from maintrack.models.user import User


@pytest.fixture
def other_user(user_repository, clock):
    now = clock()
    return user_repository.create(
        User(id="other-user-456", email="other@example.com", name="Other", created_at=now, updated_at=now)
    )


@pytest.fixture
def recurring_task(make_task):
    return make_task(is_recurring=True, frequency=30, maintenance_window_days=7)


class TestCreateTask:
    """Task creation through TaskLifecycleService.create."""

    def test_recurring_without_last_maintenance_anchors_on_now(self, make_task, clock):
        task = make_task(is_recurring=True, frequency=30, maintenance_window_days=7)

        assert task.next_maintenance == clock() + timedelta(days=30)
        assert task.maintenance_window_dates.start_date == clock() + timedelta(days=30)
        assert task.maintenance_window_dates.end_date == clock() + timedelta(days=37)
        assert task.status == TaskStatus.HEALTHY

    def test_recurring_anchors_on_supplied_last_maintenance(self, make_task):
        task = make_task(
            is_recurring=True,
            frequency=30,
            maintenance_window_days=7,
            last_maintenance="2024-01-01T00:00:00Z",
        )

        assert task.last_maintenance == datetime(2024, 1, 1)
        assert task.next_maintenance == datetime(2024, 1, 31)
        # Clock is at 2024-03-01, so the first window is already past
        assert task.status == TaskStatus.OVERDUE

    def test_recurring_with_explicit_window_start(self, make_task, clock):
        start = clock() + timedelta(days=3)
        task = make_task(
            is_recurring=True,
            frequency=90,
            maintenance_window_days=5,
            maintenance_window_dates={"start_date": start.isoformat()},
        )

        assert task.next_maintenance == start
        assert task.maintenance_window_dates.end_date == start + timedelta(days=5)
        assert task.status == TaskStatus.MAINTENANCE

    def test_one_off_task_uses_supplied_due_date(self, make_task, clock):
        due = clock() + timedelta(days=20)
        task = make_task(next_maintenance=due)

        assert task.next_maintenance == due
        assert task.maintenance_window_dates is None
        assert task.status == TaskStatus.HEALTHY

    def test_one_off_task_without_due_date_is_healthy(self, make_task):
        task = make_task()
        assert task.next_maintenance is None
        assert task.status == TaskStatus.HEALTHY

    @pytest.mark.parametrize("missing", ["frequency", "maintenance_window_days"])
    def test_recurring_requires_full_config(self, make_task, missing):
        data = {"is_recurring": True, "frequency": 30, "maintenance_window_days": 7}
        del data[missing]
        with pytest.raises(ValidationError):
            make_task(**data)

    def test_non_recurring_rejects_recurrence_fields(self, make_task):
        with pytest.raises(ValidationError):
            make_task(is_recurring=False, frequency=30)

    def test_missing_task_name_rejected(self, make_task):
        with pytest.raises(ValidationError):
            make_task(task_name="  ")

    def test_is_recurring_must_be_explicit(self, lifecycle, test_user_id, test_product):
        with pytest.raises(ValidationError):
            lifecycle.create(test_user_id, test_product.id, {"task_name": "Clean"})

    def test_frequency_must_be_positive(self, make_task):
        with pytest.raises(ValidationError):
            make_task(is_recurring=True, frequency=0, maintenance_window_days=7)

    def test_unknown_product(self, lifecycle, test_user_id):
        with pytest.raises(NotFoundError):
            lifecycle.create(test_user_id, "missing-product", {"task_name": "x", "is_recurring": False})

    def test_product_of_another_user(self, lifecycle, other_user, test_product):
        with pytest.raises(UnauthorizedError):
            lifecycle.create(other_user.id, test_product.id, {"task_name": "x", "is_recurring": False})

    def test_create_links_task_and_aggregates_product(
        self, make_task, product_repository, test_product, action_log, test_user_id, clock
    ):
        task = make_task(next_maintenance=clock() + timedelta(days=2))

        product = product_repository.get(test_product.id)
        assert product.task_ids == [task.id]
        assert product.status == ProductStatus.MAINTENANCE
        assert product.next_overall_maintenance_id == task.id
        assert action_log.entries[-1] == (
            test_user_id,
            ActionType.CREATE.value,
            EntityType.TASK.value,
            task.id,
            'Task "Descale" was created',
        )


class TestCompleteTask:

    def test_complete_recurring_arms_next_window(self, lifecycle, recurring_task, clock):
        clock.advance(days=10)
        completed = lifecycle.complete(recurring_task.id)

        assert completed.status == TaskStatus.COMPLETED
        assert completed.last_maintenance == clock()
        assert completed.next_maintenance == clock() + timedelta(days=30)
        assert completed.maintenance_window_dates.start_date == clock() + timedelta(days=30)
        assert completed.maintenance_window_dates.end_date == clock() + timedelta(days=37)

    def test_complete_one_off_clears_due_date(self, lifecycle, make_task, clock):
        task = make_task(next_maintenance=clock() - timedelta(days=1))
        assert task.status == TaskStatus.OVERDUE

        completed = lifecycle.complete(task.id)
        assert completed.status == TaskStatus.COMPLETED
        assert completed.next_maintenance is None
        assert completed.last_maintenance == clock()

    def test_complete_updates_product_pointers(self, lifecycle, recurring_task, product_repository, test_product):
        lifecycle.complete(recurring_task.id)

        product = product_repository.get(test_product.id)
        assert product.last_overall_maintenance_id == recurring_task.id
        assert product.status == ProductStatus.HEALTHY

    def test_complete_logs_action(self, lifecycle, recurring_task, action_log):
        lifecycle.complete(recurring_task.id)
        assert action_log.actions()[-1] == (ActionType.COMPLETE.value, EntityType.TASK.value)

    def test_complete_unknown_task(self, lifecycle):
        with pytest.raises(NotFoundError):
            lifecycle.complete("nope")


class TestPostponeTask:

    def test_postpone_shifts_due_date_only(self, lifecycle, make_task, clock):
        task = make_task(next_maintenance=clock() + timedelta(days=3))
        assert task.status == TaskStatus.MAINTENANCE

        postponed = lifecycle.postpone(task.id, 5)

        assert postponed.next_maintenance == task.next_maintenance + timedelta(days=5)
        # Status is left for the next reconciliation tick
        assert postponed.status == TaskStatus.MAINTENANCE

    def test_postpone_keeps_window(self, lifecycle, recurring_task):
        postponed = lifecycle.postpone(recurring_task.id, 2)

        assert postponed.maintenance_window_dates == recurring_task.maintenance_window_dates
        assert postponed.next_maintenance == recurring_task.next_maintenance + timedelta(days=2)

    @pytest.mark.parametrize("days", [0, -3])
    def test_postpone_requires_positive_days(self, lifecycle, recurring_task, days):
        with pytest.raises(ValidationError):
            lifecycle.postpone(recurring_task.id, days)

    def test_postpone_without_due_date(self, lifecycle, make_task):
        task = make_task()
        with pytest.raises(ValidationError):
            lifecycle.postpone(task.id, 3)

    def test_postpone_logs_action(self, lifecycle, recurring_task, action_log):
        lifecycle.postpone(recurring_task.id, 1)
        assert action_log.actions()[-1] == (ActionType.POSTPONE.value, EntityType.TASK.value)


class TestUpdateTask:

    def test_rename(self, lifecycle, recurring_task):
        updated = lifecycle.update(recurring_task.id, {"task_name": "Deep clean", "description": "monthly"})
        assert updated.task_name == "Deep clean"
        assert updated.description == "monthly"
        assert updated.next_maintenance == recurring_task.next_maintenance

    @pytest.mark.parametrize("field", ["status", "is_recurring", "product_id", "user_id", "id"])
    def test_immutable_fields_rejected(self, lifecycle, recurring_task, field):
        with pytest.raises(ValidationError):
            lifecycle.update(recurring_task.id, {field: "x"})

    def test_unknown_field_rejected(self, lifecycle, recurring_task):
        with pytest.raises(ValidationError):
            lifecycle.update(recurring_task.id, {"colour": "red"})

    def test_frequency_change_rearms_window(self, lifecycle, recurring_task, clock):
        updated = lifecycle.update(recurring_task.id, {"frequency": 5})

        # No last maintenance yet, so the window counts from now
        assert updated.next_maintenance == clock() + timedelta(days=5)
        assert updated.maintenance_window_dates.end_date == clock() + timedelta(days=12)
        assert updated.status == TaskStatus.MAINTENANCE

    def test_clearing_frequency_of_recurring_task_rejected(self, lifecycle, recurring_task):
        with pytest.raises(ValidationError):
            lifecycle.update(recurring_task.id, {"frequency": None})

    def test_recurring_due_date_cannot_be_patched(self, lifecycle, recurring_task, clock):
        with pytest.raises(ValidationError):
            lifecycle.update(recurring_task.id, {"next_maintenance": clock()})

    def test_non_recurring_cannot_gain_frequency(self, lifecycle, make_task):
        task = make_task()
        with pytest.raises(ValidationError):
            lifecycle.update(task.id, {"frequency": 10})

    def test_one_off_due_date_change_recomputes_status(self, lifecycle, make_task, clock):
        task = make_task(next_maintenance=clock() + timedelta(days=30))
        updated = lifecycle.update(task.id, {"next_maintenance": clock() - timedelta(days=1)})
        assert updated.status == TaskStatus.OVERDUE


class TestDeleteTask:

    def test_delete_removes_task_and_references(
        self, lifecycle, make_task, task_repository, product_repository, test_product, clock
    ):
        task = make_task(next_maintenance=clock() - timedelta(days=1))
        assert product_repository.get(test_product.id).status == ProductStatus.OVERDUE

        lifecycle.delete(task.id)

        assert task_repository.get(task.id) is None
        product = product_repository.get(test_product.id)
        assert product.task_ids == []
        assert product.next_overall_maintenance_id is None
        assert product.status == ProductStatus.HEALTHY

    def test_delete_logs_action(self, lifecycle, make_task, action_log):
        task = make_task()
        lifecycle.delete(task.id)
        assert action_log.actions()[-1] == (ActionType.DELETE.value, EntityType.TASK.value)

    def test_delete_unknown_task(self, lifecycle):
        with pytest.raises(NotFoundError):
            lifecycle.delete("nope")


class TestOwnership:

    def test_get_owned_rejects_other_user(self, lifecycle, recurring_task, other_user):
        with pytest.raises(UnauthorizedError):
            lifecycle.get_owned(recurring_task.id, other_user.id)

    def test_get_owned_returns_task(self, lifecycle, recurring_task, test_user_id):
        assert lifecycle.get_owned(recurring_task.id, test_user_id).id == recurring_task.id


class TestProductService:

    def test_create_logs_action(self, product_service, test_user_id, clock, action_log):
        product = product_service.create(create_product_base(user_id=test_user_id, name="Bike", now=clock()))
        assert product.notification_preferences == [1, 0]
        assert action_log.entries[-1][1:3] == (ActionType.CREATE.value, EntityType.PRODUCT.value)

    def test_update_descriptive_fields(self, product_service, test_product, test_user_id):
        updated = product_service.update(
            test_product.id, test_user_id, {"name": "Grinder", "notification_preferences": [7, 1, 1]}
        )
        assert updated.name == "Grinder"
        assert updated.notification_preferences == [7, 1]

    def test_update_rejects_derived_fields(self, product_service, test_product, test_user_id):
        with pytest.raises(ValidationError):
            product_service.update(test_product.id, test_user_id, {"status": "overdue"})

    def test_update_rejects_bad_preferences(self, product_service, test_product, test_user_id):
        with pytest.raises(ValidationError):
            product_service.update(test_product.id, test_user_id, {"notification_preferences": [-1]})

    def test_delete_cascades_to_tasks(
        self, product_service, make_task, task_repository, product_repository, test_product, test_user_id
    ):
        first = make_task(task_name="A")
        second = make_task(task_name="B")

        product_service.delete(test_product.id, test_user_id)

        assert product_repository.get(test_product.id) is None
        assert task_repository.get(first.id) is None
        assert task_repository.get(second.id) is None

    def test_delete_other_users_product(self, product_service, test_product, other_user):
        with pytest.raises(UnauthorizedError):
            product_service.delete(test_product.id, other_user.id)
