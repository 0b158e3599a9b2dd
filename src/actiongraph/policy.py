from __future__ import annotations

from dataclasses import dataclass

from .model import DEPENDS_ON, FAMILY


@dataclass(frozen=True)
class Policy:
    """Which edge kinds constrain workability.

    ``consolidated`` consults dependency edges only; parents are expected to
    depend on their children through ``depends_on`` edges. ``legacy`` also
    treats ``family`` edges as a separate constraint: a container stays
    blocked while any child is incomplete.
    """

    name: str
    checks_children: bool

    @property
    def edge_kinds(self) -> tuple[str, ...]:
        if self.checks_children:
            return (DEPENDS_ON, FAMILY)
        return (DEPENDS_ON,)


CONSOLIDATED = Policy(name="consolidated", checks_children=False)
LEGACY = Policy(name="legacy", checks_children=True)
POLICIES = {policy.name: policy for policy in (CONSOLIDATED, LEGACY)}
DEFAULT_POLICY = CONSOLIDATED


def resolve_policy(value: str | Policy | None) -> Policy:
    if value is None:
        return DEFAULT_POLICY
    if isinstance(value, Policy):
        return value
    key = value.strip().lower()
    policy = POLICIES.get(key)
    if policy is None:
        expected = ", ".join(POLICIES)
        raise ValueError(f"invalid policy {value!r}; expected one of: {expected}")
    return policy
