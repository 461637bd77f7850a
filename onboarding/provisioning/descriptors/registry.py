from __future__ import annotations

from onboarding.provisioning.descriptors.base import EntityDescriptor
from onboarding.provisioning.descriptors.delivery_agent import DeliveryAgentDescriptor
from onboarding.provisioning.descriptors.restaurant import RestaurantDescriptor


_DESCRIPTORS: dict[str, EntityDescriptor] = {}

def register(descriptor: EntityDescriptor) -> None:
    _DESCRIPTORS[descriptor.kind.lower().strip()] = descriptor


def get_descriptor(kind: str) -> EntityDescriptor:
    key = kind.lower().strip()
    if key not in _DESCRIPTORS:
        raise KeyError(f"No entity descriptor registered for kind={kind}")
    return _DESCRIPTORS[key]


register(RestaurantDescriptor())
register(DeliveryAgentDescriptor())
