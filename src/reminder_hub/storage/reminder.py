"""SQLite 提醒存储

每条提醒以 JSON 原文存放在 payload 列，读出后原样交给调用方校验，保证记录往返不变。
"""

import json
from typing import Any, Dict, List

import reminder_hub.storage.db_config as db_config
from reminder_hub.datamodel import Reminder
from reminder_hub.logger import logger
from reminder_hub.storage.base import ReminderStore, ensure_id

__all__ = ["SqliteReminderStore"]


def _ensure_conn():
    if db_config.conn is None:
        raise RuntimeError("数据库未初始化，请先调用 init_db()")


def _loads_payload(reminder_id: str, raw_payload: str) -> Dict[str, Any] | None:
    try:
        loaded = json.loads(raw_payload)
    except json.JSONDecodeError:
        logger.warning(f"提醒 payload 解析失败，已忽略: reminder_id={reminder_id}")
        return None
    if not isinstance(loaded, dict):
        logger.warning(f"提醒 payload 不是对象，已忽略: reminder_id={reminder_id}")
        return None
    return loaded


class SqliteReminderStore(ReminderStore):
    async def list(self) -> List[Dict[str, Any]]:
        """按创建顺序获取所有提醒记录"""
        _ensure_conn()
        records = []
        async with db_config.conn.execute(
            "SELECT reminder_id, payload FROM reminders ORDER BY seq"
        ) as cursor:
            async for row in cursor:
                record = _loads_payload(row[0], row[1])
                if record is not None:
                    records.append(record)
        return records

    async def get(self, reminder_id: str) -> Dict[str, Any] | None:
        _ensure_conn()
        async with db_config.conn.execute(
            "SELECT reminder_id, payload FROM reminders WHERE reminder_id = ?",
            (reminder_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _loads_payload(row[0], row[1])

    async def upsert(self, reminder: Reminder) -> Reminder:
        _ensure_conn()
        reminder = ensure_id(reminder)
        payload = json.dumps(reminder.to_dict(), ensure_ascii=False)
        await db_config.conn.execute(
            (
                "INSERT INTO reminders (reminder_id, payload, completed) VALUES (?, ?, ?) "
                "ON CONFLICT(reminder_id) DO UPDATE SET "
                "payload = excluded.payload, completed = excluded.completed, updated_at_utc = CURRENT_TIMESTAMP"
            ),
            (reminder.id, payload, int(reminder.completed))
        )
        await db_config.conn.commit()
        logger.trace(f"保存提醒: reminder_id={reminder.id}, completed={reminder.completed}")
        return reminder

    async def delete(self, reminder_id: str) -> None:
        _ensure_conn()
        await db_config.conn.execute("DELETE FROM reminders WHERE reminder_id = ?", (reminder_id,))
        await db_config.conn.commit()
        logger.trace(f"删除提醒: reminder_id={reminder_id}")

    async def import_records(self, records: List[Dict[str, Any]]) -> int:
        """批量导入原始记录(例如从旧版 JSON 导出)，缺少 id 的记录会被跳过"""
        _ensure_conn()
        imported = 0
        for record in records:
            reminder_id = record.get("id") if isinstance(record, dict) else None
            if not isinstance(reminder_id, str) or reminder_id == "":
                logger.warning(f"导入时跳过缺少 id 的记录: {record!r}")
                continue
            await db_config.conn.execute(
                (
                    "INSERT INTO reminders (reminder_id, payload, completed) VALUES (?, ?, ?) "
                    "ON CONFLICT(reminder_id) DO UPDATE SET "
                    "payload = excluded.payload, completed = excluded.completed, updated_at_utc = CURRENT_TIMESTAMP"
                ),
                (reminder_id, json.dumps(record, ensure_ascii=False), int(bool(record.get("completed"))))
            )
            imported += 1
        await db_config.conn.commit()
        logger.info(f"导入提醒记录 {imported} 条")
        return imported
