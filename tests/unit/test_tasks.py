"""
Unit tests for Celery ingestion tasks
"""
import uuid
from unittest.mock import MagicMock, patch

from shop_insights.utils.exceptions import ShopifyAPIError
from shop_insights.workers.tasks import (
    ingest_tenant_data,
    log_ingestion_failure,
    schedule_tenant_ingestion,
)


class TestIngestTenantData:
    """Test the ingestion task body"""

    def test_success(self, db_session, test_tenant):
        service = MagicMock()
        service.ingest_all.return_value = {"customers": 1, "orders": 2, "products": 3}

        with patch("shop_insights.workers.tasks.IngestionService", return_value=service):
            result = ingest_tenant_data.apply(args=[str(test_tenant.id)]).get()

        assert result["status"] == "success"
        assert result["orders"] == 2
        service.ingest_all.assert_called_once_with(trigger="registration")
        service.close.assert_called_once()

    def test_failure_is_logged_and_returned(self, db_session, test_tenant):
        service = MagicMock()
        service.ingest_all.side_effect = ShopifyAPIError("boom", status_code=500)

        with patch("shop_insights.workers.tasks.IngestionService", return_value=service), \
                patch("shop_insights.workers.tasks.logger") as mock_logger:
            result = ingest_tenant_data.apply(args=[str(test_tenant.id)]).get()

        assert result["status"] == "failed"
        assert result["error"] == "boom"
        mock_logger.error.assert_called_once()
        service.close.assert_called_once()

    def test_unknown_tenant_skipped(self, db_session):
        result = ingest_tenant_data.apply(args=[str(uuid.uuid4())]).get()
        assert result["status"] == "skipped"


class TestScheduleTenantIngestion:
    """Test fire-and-forget publication"""

    def test_publishes_with_error_callback(self):
        tenant_id = uuid.uuid4()

        with patch("shop_insights.workers.tasks.ingest_tenant_data") as task:
            task.apply_async.return_value.id = "task-123"
            task_id = schedule_tenant_ingestion(tenant_id)

        assert task_id == "task-123"
        kwargs = task.apply_async.call_args.kwargs
        assert kwargs["args"] == [str(tenant_id)]
        assert kwargs["kwargs"] == {"trigger": "registration"}
        assert kwargs["link_error"].task == log_ingestion_failure.name

    def test_broker_failure_is_swallowed(self):
        with patch("shop_insights.workers.tasks.ingest_tenant_data") as task, \
                patch("shop_insights.workers.tasks.logger") as mock_logger:
            task.apply_async.side_effect = ConnectionError("broker down")
            assert schedule_tenant_ingestion(uuid.uuid4()) is None

        mock_logger.error.assert_called_once()
