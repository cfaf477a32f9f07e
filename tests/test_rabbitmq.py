"""Tests for the RabbitMQ adapter."""

import json

import pytest

from polyqueue_lsp.adapters import RabbitMQAdapter
from polyqueue_lsp.exceptions import ParseFailureError, QueueNotFoundError, ToolUnavailableError
from polyqueue_lsp.models import PublishOptions, QueueInfo, RabbitMQConfig, SubscribeOptions
from tests.conftest import FakeRunner

SAMPLE_QUEUES = json.dumps(
    [
        {"name": "orders", "messages": 4, "consumers": 2},
        {"name": "payments", "messages": 0, "consumers": 0},
    ]
)

SAMPLE_CONSUMERS = json.dumps(
    [
        {"queue_name": "orders", "consumer_tag": "amq.ctag-worker-1"},
        {"queue_name": "payments", "consumer_tag": "amq.ctag-billing"},
        {"queue_name": "orders", "consumer_tag": "amq.ctag-worker-2"},
    ]
)

SAMPLE_MESSAGES = json.dumps(
    [
        {"payload": "hello", "payload_bytes": 5, "redelivered": False},
        {"payload": '{"sku":"A-1"}', "payload_bytes": 13, "redelivered": True},
    ]
)


@pytest.fixture
def adapter(runner: FakeRunner) -> RabbitMQAdapter:
    """Create a RabbitMQ adapter on the scripted runner."""
    return RabbitMQAdapter(RabbitMQConfig(), runner)


def _properties(args: list[str]) -> dict[str, object] | None:
    for arg in args:
        if arg.startswith("properties="):
            return json.loads(arg.removeprefix("properties="))
    return None


class TestMetadata:
    """Tests for static adapter description."""

    def test_metadata_is_pure(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        assert adapter.metadata() == adapter.metadata()
        assert adapter.metadata().protocol == "AMQP 0-9-1"
        assert runner.calls == []


class TestDetect:
    """Tests for tool detection."""

    async def test_status_succeeds(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("status", tool="rabbitmqctl", output="Status of node rabbit@localhost ...")

        assert await adapter.detect() is True

    async def test_node_unreachable(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("status", tool="rabbitmqctl", exit_code=69, output="Error: unable to connect")

        assert await adapter.detect() is False


class TestPublish:
    """Tests for rabbitmqadmin publish."""

    async def test_publish_defaults(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("publish", tool="rabbitmqadmin", output="Message published")

        message_id = await adapter.publish("orders", {"sku": "A-1"})

        assert message_id.startswith("msg_")
        args = runner.args_for("publish")
        assert args[:6] == ["-H", "localhost", "-P", "15672", "-V", "/"]
        assert args[6:] == [
            "publish",
            "exchange=",
            "routing_key=orders",
            'payload={"sku":"A-1"}',
        ]
        assert _properties(args) is None

    async def test_publish_properties(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("publish", tool="rabbitmqadmin", output="Message published")

        await adapter.publish(
            "orders",
            "hello",
            PublishOptions(
                exchange="shop",
                routing_key="orders.created",
                priority="high",
                persistent=True,
                headers={"trace-id": "abc"},
            ),
        )

        args = runner.args_for("publish")
        assert "exchange=shop" in args
        assert "routing_key=orders.created" in args
        assert _properties(args) == {
            "priority": 10,
            "delivery_mode": 2,
            "headers": {"trace-id": "abc"},
        }

    async def test_low_priority(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("publish", tool="rabbitmqadmin", output="Message published")

        await adapter.publish("orders", "x", PublishOptions(priority="low"))

        assert _properties(runner.args_for("publish")) == {"priority": 1}

    async def test_unrouted_message_still_succeeds(
        self, adapter: RabbitMQAdapter, runner: FakeRunner
    ) -> None:
        runner.reply("publish", tool="rabbitmqadmin", output="Message published but NOT routed")

        assert (await adapter.publish("nowhere", "x")).startswith("msg_")

    async def test_ids_are_unique(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("publish", tool="rabbitmqadmin", output="Message published")

        first = await adapter.publish("orders", "a")
        second = await adapter.publish("orders", "b")

        assert first != second


class TestSubscribe:
    """Tests for rabbitmqadmin get."""

    async def test_reads_payloads(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("get", tool="rabbitmqadmin", output=SAMPLE_MESSAGES)

        assert await adapter.subscribe("orders") == ["hello", '{"sku":"A-1"}']
        args = runner.args_for("get")
        assert "queue=orders" in args
        assert "count=10" in args
        assert "ackmode=ack_requeue_true" in args

    async def test_consume_without_requeue(
        self, adapter: RabbitMQAdapter, runner: FakeRunner
    ) -> None:
        runner.reply("get", tool="rabbitmqadmin", output="[]")

        await adapter.subscribe("orders", SubscribeOptions(count=3, requeue=False))

        args = runner.args_for("get")
        assert "count=3" in args
        assert "ackmode=ack_requeue_false" in args

    async def test_empty_queue(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("get", tool="rabbitmqadmin", output="")

        assert await adapter.subscribe("orders") == []

    async def test_unexpected_output(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("get", tool="rabbitmqadmin", output='[{"routing_key": "orders"}]')

        with pytest.raises(ParseFailureError, match="messages"):
            await adapter.subscribe("orders")


class TestQueueManagement:
    """Tests for rabbitmqctl queries and purge."""

    async def test_list_queues(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("list_queues", tool="rabbitmqctl", output=SAMPLE_QUEUES)

        assert await adapter.list_queues() == ["orders", "payments"]
        args = runner.args_for("list_queues")
        assert args[:3] == ["-q", "-p", "/"]
        assert args[-2:] == ["--formatter", "json"]

    async def test_list_queues_skips_banner(
        self, adapter: RabbitMQAdapter, runner: FakeRunner
    ) -> None:
        runner.reply(
            "list_queues",
            tool="rabbitmqctl",
            output='Timeout: 60.0 seconds ...\nListing queues for vhost / ...\n[{"name":"orders"}]',
        )

        assert await adapter.list_queues() == ["orders"]

    async def test_truncated_json(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("list_queues", tool="rabbitmqctl", output='[{"name": "ord')

        with pytest.raises(ParseFailureError):
            await adapter.list_queues()

    async def test_queue_status_with_consumer_tags(
        self, adapter: RabbitMQAdapter, runner: FakeRunner
    ) -> None:
        runner.reply("list_queues", tool="rabbitmqctl", output=SAMPLE_QUEUES)
        runner.reply("list_consumers", tool="rabbitmqctl", output=SAMPLE_CONSUMERS)

        info = await adapter.queue_status("orders")

        assert info == QueueInfo(
            name="orders",
            length=4,
            consumer_groups=["amq.ctag-worker-1", "amq.ctag-worker-2"],
            last_id=None,
        )

    async def test_consumer_count_fallback(
        self, adapter: RabbitMQAdapter, runner: FakeRunner
    ) -> None:
        """Test consumers are summarized by count when they cannot be listed."""
        runner.reply("list_queues", tool="rabbitmqctl", output=SAMPLE_QUEUES)
        runner.reply("list_consumers", tool="rabbitmqctl", exit_code=2, output="Error: timeout")

        info = await adapter.queue_status("orders")

        assert info.consumer_groups == ["consumers: 2"]

    async def test_idle_queue(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("list_queues", tool="rabbitmqctl", output=SAMPLE_QUEUES)
        runner.reply("list_consumers", tool="rabbitmqctl", output="[]")

        info = await adapter.queue_status("payments")

        assert info.length == 0
        assert info.consumer_groups == []

    async def test_missing_queue(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("list_queues", tool="rabbitmqctl", output=SAMPLE_QUEUES)

        with pytest.raises(QueueNotFoundError):
            await adapter.queue_status("ghost")

    async def test_purge_is_idempotent(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("purge_queue", tool="rabbitmqctl", output="")

        await adapter.purge_queue("orders")
        await adapter.purge_queue("orders")

        assert runner.count("purge_queue", "orders") == 2

    async def test_purge_failure(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("purge_queue", tool="rabbitmqctl", exit_code=2, output="Error: not_found")

        with pytest.raises(ToolUnavailableError, match="not_found"):
            await adapter.purge_queue("ghost")

    async def test_version(self, adapter: RabbitMQAdapter, runner: FakeRunner) -> None:
        runner.reply("version", tool="rabbitmqctl", output="3.12.10")

        assert await adapter.version() == "3.12.10"

    async def test_custom_vhost(self, runner: FakeRunner) -> None:
        adapter = RabbitMQAdapter(RabbitMQConfig(vhost="shop"), runner)
        runner.reply("purge_queue", tool="rabbitmqctl", output="")

        await adapter.purge_queue("orders")

        assert runner.calls[0][1][:3] == ["-q", "-p", "shop"]
