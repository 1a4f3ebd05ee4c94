"""Template application: bulk-create nodes, skipping paths already present."""

from mmp.core.errors import ValidationError
from mmp.core.logging import get_logger
from mmp.memory.base import ApplyTemplateResult, CreatedNode, TemplateNode, utcnow
from mmp.memory.nodes import NodeStore

logger = get_logger("memory.templates")


def validate_template(template: list[TemplateNode]) -> None:
    """Reject the whole template if any needInit entry lacks content.

    Runs before anything is written.
    """
    invalid = [
        entry.path
        for entry in template
        if entry.need_init and not (entry.content or "").strip()
    ]
    if invalid:
        raise ValidationError(
            f"Template nodes with needInit=true must have non-empty content: "
            f"{', '.join(invalid)}",
            {"paths": invalid},
        )


class TemplateApplier:
    def __init__(self, nodes: NodeStore):
        self.nodes = nodes

    async def apply(
        self, memory_id: str, template: list[TemplateNode]
    ) -> ApplyTemplateResult:
        validate_template(template)

        result = ApplyTemplateResult(memory_id=memory_id)
        for entry in template:
            if await self.nodes.find(memory_id, entry.path) is not None:
                logger.debug(f"Template path '{entry.path}' already exists, skipping")
                continue

            node = entry.to_node()
            node.created_at = node.updated_at = utcnow()
            await self.nodes.put(memory_id, node)
            result.created_nodes.append(CreatedNode(path=entry.path, need_init=entry.need_init))

        logger.info(
            f"Applied template to {memory_id}: {len(result.created_nodes)} created, "
            f"{len(template) - len(result.created_nodes)} skipped"
        )
        return result
