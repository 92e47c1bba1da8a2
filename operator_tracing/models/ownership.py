"""Controller owner references used for cascade deletion."""

from .resources import KubernetesResource, OwnerReference
from ..errors import OwnerReferenceError


def set_controller_reference(owner: KubernetesResource, dependent: KubernetesResource) -> None:
    """
    Mark ``owner`` as the controller of ``dependent``.

    The garbage collector deletes the dependent once the owner is gone.
    Raises OwnerReferenceError when the link cannot be expressed: the owner
    has not been persisted yet (no uid), the two live in different
    namespaces, or another resource already controls the dependent.
    """
    if not owner.metadata.uid:
        raise OwnerReferenceError(
            f"{owner.KIND} {owner.identity} has no uid; it must be persisted before owning resources"
        )

    if owner.metadata.namespace != dependent.metadata.namespace:
        raise OwnerReferenceError(
            f"cross-namespace owner references are disallowed: owner {owner.KIND} {owner.identity}, "
            f"dependent {dependent.KIND} {dependent.identity}"
        )

    reference = OwnerReference(
        api_version=owner.api_version(),
        kind=owner.KIND,
        name=owner.metadata.name,
        uid=owner.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )

    existing = dependent.metadata.controller_reference()
    if existing is not None and existing.uid != reference.uid:
        raise OwnerReferenceError(
            f"{dependent.KIND} {dependent.identity} is already controlled by "
            f"{existing.kind} {existing.name}"
        )

    dependent.metadata.owner_references = [
        ref for ref in dependent.metadata.owner_references if ref.uid != reference.uid
    ]
    dependent.metadata.owner_references.append(reference)
