import json
from typing import Iterable, List, Optional
from uuid import UUID

from app.models.alert import (
    Alert,
    AlertCreate,
    AlertEntityType,
    AlertStats,
    AlertStatus,
    AlertType,
)

ALERT_COLUMNS = """
    id, tenant_id, type, severity, status, title, message,
    entity_type, entity_id, data,
    created_at, acknowledged_at, acknowledged_by, resolved_at
"""

def row_to_alert(row) -> Alert:
    data = dict(row)
    payload = data.get('data')
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    data['data'] = payload or {}
    return Alert(**data)

class AlertRepository:

    async def create(self, conn, alert: AlertCreate) -> Optional[Alert]:
        """
        Insert an ACTIVE alert.

        Returns None when an ACTIVE alert of a deduplicated type already exists
        for the entity (partial unique index uq_alerts_one_active).
        """
        row = await conn.fetchrow(f"""
            INSERT INTO alerts (
                tenant_id, type, severity, status,
                title, message, entity_type, entity_id, data
            ) VALUES ($1, $2, $3, 'active', $4, $5, $6, $7, $8::jsonb)
            ON CONFLICT (tenant_id, entity_type, entity_id, type)
                WHERE status = 'active' AND type <> 'price_increase'
                DO NOTHING
            RETURNING {ALERT_COLUMNS}
        """, alert.tenant_id, alert.type.value, alert.severity.value,
        alert.title, alert.message, alert.entity_type.value, alert.entity_id,
        json.dumps(alert.data, default=str))
        return row_to_alert(row) if row else None

    async def find_active_by_entity(
        self,
        conn,
        tenant_id: UUID,
        entity_type: AlertEntityType,
        entity_id: UUID,
        alert_type: AlertType
    ) -> Optional[Alert]:
        row = await conn.fetchrow(f"""
            SELECT {ALERT_COLUMNS}
            FROM alerts
            WHERE tenant_id = $1
              AND entity_type = $2
              AND entity_id = $3
              AND type = $4
              AND status = 'active'
            LIMIT 1
        """, tenant_id, entity_type.value, entity_id, alert_type.value)
        return row_to_alert(row) if row else None

    async def resolve_by_entity(
        self,
        conn,
        tenant_id: UUID,
        entity_type: AlertEntityType,
        entity_id: UUID,
        alert_type: AlertType
    ) -> int:
        """Resolve every unresolved alert of this type for the entity, returns how many"""
        rows = await conn.fetch("""
            UPDATE alerts
            SET status = 'resolved', resolved_at = NOW()
            WHERE tenant_id = $1
              AND entity_type = $2
              AND entity_id = $3
              AND type = $4
              AND status IN ('active', 'acknowledged')
            RETURNING id
        """, tenant_id, entity_type.value, entity_id, alert_type.value)
        return len(rows)

    async def get(self, conn, alert_id: UUID, tenant_id: UUID) -> Optional[Alert]:
        row = await conn.fetchrow(f"""
            SELECT {ALERT_COLUMNS}
            FROM alerts
            WHERE id = $1 AND tenant_id = $2
        """, alert_id, tenant_id)
        return row_to_alert(row) if row else None

    async def transition(
        self,
        conn,
        alert_id: UUID,
        tenant_id: UUID,
        to_status: AlertStatus,
        from_statuses: Iterable[AlertStatus],
        user_id: Optional[UUID] = None
    ) -> Optional[Alert]:
        """Move the alert to to_status only if it is still in one of from_statuses"""
        row = await conn.fetchrow(f"""
            UPDATE alerts
            SET
                status = $1,
                acknowledged_at = CASE WHEN $1 = 'acknowledged' THEN NOW() ELSE acknowledged_at END,
                acknowledged_by = CASE WHEN $1 = 'acknowledged' THEN $2 ELSE acknowledged_by END,
                resolved_at = CASE WHEN $1 = 'resolved' THEN NOW() ELSE resolved_at END
            WHERE id = $3 AND tenant_id = $4 AND status = ANY($5::text[])
            RETURNING {ALERT_COLUMNS}
        """, to_status.value, user_id, alert_id, tenant_id,
        [status.value for status in from_statuses])
        return row_to_alert(row) if row else None

    async def find_active(self, conn, tenant_id: UUID, limit: int = 50) -> List[Alert]:
        rows = await conn.fetch(f"""
            SELECT {ALERT_COLUMNS}
            FROM alerts
            WHERE tenant_id = $1 AND status = 'active'
            ORDER BY
                CASE severity
                    WHEN 'critical' THEN 1
                    WHEN 'warning' THEN 2
                    ELSE 3
                END,
                created_at DESC
            LIMIT $2
        """, tenant_id, limit)
        return [row_to_alert(row) for row in rows]

    async def get_stats(self, conn, tenant_id: UUID) -> AlertStats:
        row = await conn.fetchrow("""
            SELECT
                COUNT(*) FILTER (WHERE status = 'active') as active_count,
                COUNT(*) FILTER (WHERE status = 'active' AND severity = 'critical') as critical_count,
                COUNT(*) FILTER (WHERE status = 'active' AND severity = 'warning') as warning_count,
                COUNT(*) FILTER (WHERE status = 'acknowledged') as acknowledged_count
            FROM alerts
            WHERE tenant_id = $1
        """, tenant_id)
        return AlertStats(**dict(row))

    async def history(
        self,
        conn,
        tenant_id: UUID,
        status: Optional[AlertStatus] = None,
        alert_type: Optional[AlertType] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Alert]:
        query = f"""
            SELECT {ALERT_COLUMNS}
            FROM alerts
            WHERE tenant_id = $1
        """
        params = [tenant_id]
        param_count = 2

        if status:
            query += f" AND status = ${param_count}"
            params.append(status.value)
            param_count += 1

        if alert_type:
            query += f" AND type = ${param_count}"
            params.append(alert_type.value)
            param_count += 1

        query += f" ORDER BY created_at DESC LIMIT ${param_count} OFFSET ${param_count + 1}"
        params.extend([limit, offset])

        rows = await conn.fetch(query, *params)
        return [row_to_alert(row) for row in rows]
