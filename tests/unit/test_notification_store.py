"""
通知记录存储单元测试
"""

import pytest

from farm_platform.notifications.exceptions import InvalidStatusTransition
from farm_platform.notifications.store import NotificationStore
from shared.models.notification import NotificationChannel, NotificationStatus


def event_data(recipient_id=42, channel="in_app", **overrides):
    data = {
        "recipient_id": recipient_id,
        "channel": channel,
        "title": "Pago Exitoso",
        "message": "Tu pago por Premium ha sido procesado exitosamente.",
        "payload": {"planName": "Premium"},
        "template_name": None,
    }
    data.update(overrides)
    return data


@pytest.fixture
def store(db_manager):
    return NotificationStore(db_manager)


class TestNotificationStoreCreate:
    """测试创建通知记录"""

    @pytest.mark.asyncio
    async def test_create_pending(self, store):
        """测试新记录为 pending 状态"""
        notification_id = await store.create(event_data())

        record = await store.get(notification_id)
        assert record.status == NotificationStatus.PENDING
        assert record.channel == NotificationChannel.IN_APP
        assert record.recipient_id == 42
        assert record.payload == {"planName": "Premium"}
        assert record.created_at is not None
        assert record.sent_at is None
        assert record.delivered_at is None
        assert record.read_at is None
        assert record.error_message is None

    @pytest.mark.asyncio
    async def test_create_defaults(self, store):
        """测试缺省字段"""
        notification_id = await store.create({"recipient_id": 7, "channel": NotificationChannel.SMS})

        record = await store.get(notification_id)
        assert record.title == ""
        assert record.message == ""
        assert record.payload == {}

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        """测试获取不存在的记录"""
        assert await store.get(999) is None


class TestNotificationStoreStatus:
    """测试状态流转"""

    @pytest.mark.asyncio
    async def test_delivered_stamps_sent_and_delivered(self, store):
        """测试 pending 直接到 delivered 同时写入发送和送达时间"""
        notification_id = await store.create(event_data())

        await store.update_status(notification_id, NotificationStatus.DELIVERED)

        record = await store.get(notification_id)
        assert record.status == NotificationStatus.DELIVERED
        assert record.sent_at is not None
        assert record.delivered_at is not None

    @pytest.mark.asyncio
    async def test_sent_then_delivered_keeps_sent_at(self, store):
        """测试先 sent 后 delivered 保留原发送时间"""
        notification_id = await store.create(event_data())

        await store.update_status(notification_id, NotificationStatus.SENT)
        sent_at = (await store.get(notification_id)).sent_at
        await store.update_status(notification_id, "delivered")

        record = await store.get(notification_id)
        assert record.sent_at == sent_at
        assert record.delivered_at >= sent_at

    @pytest.mark.asyncio
    async def test_failed_records_error(self, store):
        """测试失败时记录错误信息"""
        notification_id = await store.create(event_data(channel="email"))

        await store.update_status(notification_id, NotificationStatus.FAILED, "channel disabled")

        record = await store.get(notification_id)
        assert record.status == NotificationStatus.FAILED
        assert record.error_message == "channel disabled"
        assert record.sent_at is None
        assert record.delivered_at is None

    @pytest.mark.asyncio
    async def test_failed_is_terminal(self, store):
        """测试 failed 为终态"""
        notification_id = await store.create(event_data())
        await store.update_status(notification_id, NotificationStatus.FAILED, "smtp down")

        with pytest.raises(InvalidStatusTransition):
            await store.update_status(notification_id, NotificationStatus.DELIVERED)

        record = await store.get(notification_id)
        assert record.status == NotificationStatus.FAILED

    @pytest.mark.asyncio
    async def test_pending_cannot_be_read(self, store):
        """测试 pending 不能直接变为 read"""
        notification_id = await store.create(event_data())

        with pytest.raises(InvalidStatusTransition):
            await store.update_status(notification_id, NotificationStatus.READ)

    @pytest.mark.asyncio
    async def test_no_backwards_transition(self, store):
        """测试状态不能回退"""
        notification_id = await store.create(event_data())
        await store.update_status(notification_id, NotificationStatus.DELIVERED)

        with pytest.raises(InvalidStatusTransition):
            await store.update_status(notification_id, NotificationStatus.SENT)
        with pytest.raises(InvalidStatusTransition):
            await store.update_status(notification_id, NotificationStatus.PENDING)

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        """测试更新不存在的记录"""
        with pytest.raises(LookupError):
            await store.update_status(999, NotificationStatus.DELIVERED)


class TestNotificationStoreRead:
    """测试已读标记"""

    @pytest.mark.asyncio
    async def test_mark_read(self, store):
        """测试标记已读"""
        notification_id = await store.create(event_data())
        await store.update_status(notification_id, NotificationStatus.DELIVERED)

        assert await store.mark_read(notification_id, 42) is True

        record = await store.get(notification_id)
        assert record.status == NotificationStatus.READ
        assert record.read_at is not None

    @pytest.mark.asyncio
    async def test_mark_read_idempotent(self, store):
        """测试重复标记已读不修改已读时间"""
        notification_id = await store.create(event_data())
        await store.update_status(notification_id, NotificationStatus.DELIVERED)
        await store.mark_read(notification_id, 42)
        read_at = (await store.get(notification_id)).read_at

        assert await store.mark_read(notification_id, 42) is True

        assert (await store.get(notification_id)).read_at == read_at

    @pytest.mark.asyncio
    async def test_mark_read_wrong_recipient(self, store):
        """测试不能标记其他用户的通知"""
        notification_id = await store.create(event_data())
        await store.update_status(notification_id, NotificationStatus.DELIVERED)

        assert await store.mark_read(notification_id, 43) is False

        record = await store.get(notification_id)
        assert record.status == NotificationStatus.DELIVERED
        assert record.read_at is None

    @pytest.mark.asyncio
    async def test_mark_read_missing(self, store):
        """测试标记不存在的通知"""
        assert await store.mark_read(999, 42) is False

    @pytest.mark.asyncio
    async def test_mark_read_pending_or_failed(self, store):
        """测试未送达的通知不能标记已读"""
        pending_id = await store.create(event_data())
        failed_id = await store.create(event_data())
        await store.update_status(failed_id, NotificationStatus.FAILED, "smtp down")

        assert await store.mark_read(pending_id, 42) is False
        assert await store.mark_read(failed_id, 42) is False

    @pytest.mark.asyncio
    async def test_unread_count(self, store):
        """测试未读数量"""
        ids = []
        for _ in range(3):
            notification_id = await store.create(event_data())
            await store.update_status(notification_id, NotificationStatus.DELIVERED)
            ids.append(notification_id)

        assert await store.unread_count(42) == 3

        await store.mark_read(ids[0], 42)
        assert await store.unread_count(42) == 2

        # 其他用户不受影响
        assert await store.unread_count(43) == 0

    @pytest.mark.asyncio
    async def test_unread_count_includes_failed(self, store):
        """测试未读数量包含失败的记录"""
        failed_id = await store.create(event_data())
        await store.update_status(failed_id, NotificationStatus.FAILED, "smtp down")

        assert await store.unread_count(42) == 1

    @pytest.mark.asyncio
    async def test_mark_all_read(self, store):
        """测试全部标记已读"""
        for _ in range(2):
            notification_id = await store.create(event_data())
            await store.update_status(notification_id, NotificationStatus.DELIVERED)
        failed_id = await store.create(event_data())
        await store.update_status(failed_id, NotificationStatus.FAILED, "smtp down")
        other_id = await store.create(event_data(recipient_id=43))
        await store.update_status(other_id, NotificationStatus.DELIVERED)

        assert await store.mark_all_read(42) == 2

        assert await store.unread_count(42) == 1
        assert (await store.get(failed_id)).status == NotificationStatus.FAILED
        assert (await store.get(other_id)).status == NotificationStatus.DELIVERED
        assert await store.mark_all_read(42) == 0


class TestNotificationStoreList:
    """测试列表查询"""

    @pytest.mark.asyncio
    async def test_newest_first(self, store):
        """测试按创建时间倒序"""
        first = await store.create(event_data(title="primero"))
        second = await store.create(event_data(title="segundo"))
        third = await store.create(event_data(title="tercero"))

        records = await store.list_for_user(42)

        assert [r.id for r in records] == [third, second, first]

    @pytest.mark.asyncio
    async def test_filter_by_channel(self, store):
        """测试按渠道过滤"""
        await store.create(event_data(channel="email"))
        in_app_id = await store.create(event_data(channel="in_app"))

        records = await store.list_for_user(42, channel="in_app")

        assert [r.id for r in records] == [in_app_id]

    @pytest.mark.asyncio
    async def test_pagination(self, store):
        """测试分页"""
        ids = [await store.create(event_data()) for _ in range(5)]

        page = await store.list_for_user(42, limit=2, offset=1)

        assert [r.id for r in page] == [ids[3], ids[2]]

    @pytest.mark.asyncio
    async def test_only_own_records(self, store):
        """测试只返回该用户的记录"""
        await store.create(event_data(recipient_id=43))

        assert await store.list_for_user(42) == []
