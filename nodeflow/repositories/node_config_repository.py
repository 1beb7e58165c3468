"""Node configuration repository for stored flow/work overrides."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..db.models import NodeConfigModel
from ..engine.types import NodeConfigRecord
from ..nodes.base import merge_config

if TYPE_CHECKING:
    from ..engine.node_factory import NodeFactory


class NodeConfigRepository:
    """Repository for per node type flow and work config overrides."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, node_type: str) -> NodeConfigRecord | None:
        """Get the stored overrides for a node type."""
        db_config = await self._session.get(NodeConfigModel, node_type)
        if not db_config:
            return None
        return self._to_record(db_config)

    async def get_all(self) -> dict[str, NodeConfigRecord]:
        """Get every stored override keyed by node type."""
        result = await self._session.execute(select(NodeConfigModel))
        return {c.node_type: self._to_record(c) for c in result.scalars().all()}

    async def save(
        self,
        node_type: str,
        flow_config: dict[str, Any] | None = None,
        work_config: dict[str, Any] | None = None,
    ) -> NodeConfigRecord:
        """
        Merge partial overrides into the stored record.

        None and blank-string values are skipped so a partial update never
        erases what is already stored.
        """
        db_config = await self._session.get(NodeConfigModel, node_type)
        if not db_config:
            db_config = NodeConfigModel(node_type=node_type, flow_config={}, work_config={})
            self._session.add(db_config)

        db_config.flow_config = merge_config(db_config.flow_config or {}, flow_config)
        db_config.work_config = merge_config(db_config.work_config or {}, work_config)
        db_config.updated_at = datetime.now()

        await self._session.commit()
        await self._session.refresh(db_config)

        return self._to_record(db_config)

    async def delete(self, node_type: str) -> bool:
        """Delete stored overrides, falling back to class defaults."""
        db_config = await self._session.get(NodeConfigModel, node_type)
        if not db_config:
            return False

        await self._session.delete(db_config)
        await self._session.commit()
        return True

    async def resolve(self, node_type: str, factory: NodeFactory) -> NodeConfigRecord:
        """
        Effective configs for a node type: class defaults overlaid with overrides.

        Raises:
            UnknownNodeTypeError: If the type is not registered
        """
        node_class = factory.get_node_class(node_type)
        stored = await self.get(node_type)
        return NodeConfigRecord(
            node_type=node_type,
            flow_config=merge_config(
                node_class.build_default_flow_config(),
                stored.flow_config if stored else None,
            ),
            work_config=merge_config(
                node_class.build_default_work_config(),
                stored.work_config if stored else None,
            ),
        )

    def _to_record(self, db_config: NodeConfigModel) -> NodeConfigRecord:
        return NodeConfigRecord(
            node_type=db_config.node_type,
            flow_config=dict(db_config.flow_config or {}),
            work_config=dict(db_config.work_config or {}),
        )
