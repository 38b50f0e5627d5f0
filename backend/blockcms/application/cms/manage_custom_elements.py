from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from blockcms.extensions import custom_elements
from blockcms.domain.custom_elements import CustomElementDefinition
from blockcms.domain.registry import JsonDirectorySource
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional


@contextmanager
def registry_write(registry):
    """
    Registry mutation inside a database transaction.

    The cache may have been reloaded mid-transaction, so a rollback drops
    it again.
    """
    try:
        with transactional():
            yield
    except Exception:
        registry.invalidate()
        raise


def create_custom_element(*, actor_id: str, data: Dict[str, Any]) -> CustomElementDefinition:
    registry = custom_elements()
    with registry_write(registry):
        definition = registry.create(data)
        log_action(
            actor_id=actor_id,
            action="custom_element.create",
            entity_type="custom_element",
            entity_id=definition.type,
        )
    return definition


def update_custom_element(
    *,
    type_name: str,
    actor_id: str,
    data: Dict[str, Any],
) -> CustomElementDefinition:
    """Locked attributes in `data` are dropped, not rejected."""
    registry = custom_elements()
    with registry_write(registry):
        definition = registry.update(type_name, data)
        log_action(
            actor_id=actor_id,
            action="custom_element.update",
            entity_type="custom_element",
            entity_id=type_name,
            payload={"fields": sorted(data)},
        )
    return definition


def delete_custom_element(*, type_name: str, actor_id: str) -> None:
    """Contents still using the type keep it; it renders as unknown."""
    registry = custom_elements()
    with registry_write(registry):
        registry.delete(type_name)
        log_action(
            actor_id=actor_id,
            action="custom_element.delete",
            entity_type="custom_element",
            entity_id=type_name,
        )


def reorder_custom_elements(*, actor_id: str, types: List[str]) -> List[CustomElementDefinition]:
    registry = custom_elements()
    with registry_write(registry):
        registry.reorder(types)
        log_action(
            actor_id=actor_id,
            action="custom_element.reorder",
            entity_type="custom_element",
            entity_id="*",
            payload={"types": types},
        )
    return list(registry.all().values())


def duplicate_custom_element(*, type_name: str, actor_id: str) -> CustomElementDefinition:
    registry = custom_elements()
    with registry_write(registry):
        definition = registry.duplicate(type_name)
        log_action(
            actor_id=actor_id,
            action="custom_element.duplicate",
            entity_type="custom_element",
            entity_id=definition.type,
            payload={"source": type_name},
        )
    return definition


def import_custom_elements(
    *,
    path: str,
    is_system: bool = False,
    overwrite: bool = False,
    actor_id: Optional[str] = None,
) -> Dict[str, int]:
    """
    Imports legacy JSON definition files into the database.

    Existing types are skipped unless `overwrite` is set, in which case
    they are replaced as-is (system flag included).
    """
    registry = custom_elements()
    definitions = JsonDirectorySource(path, is_system=is_system).load_all()
    counts = {"created": 0, "updated": 0, "skipped": 0}

    with registry_write(registry):
        for definition in definitions:
            if not registry.exists(definition.type):
                registry.create(definition.to_dict())
                counts["created"] += 1
            elif overwrite:
                registry.source.save(definition)
                registry.invalidate()
                counts["updated"] += 1
            else:
                counts["skipped"] += 1

        log_action(
            actor_id=actor_id,
            action="custom_element.import",
            entity_type="custom_element",
            entity_id="*",
            payload={"path": path, **counts},
        )

    return counts
