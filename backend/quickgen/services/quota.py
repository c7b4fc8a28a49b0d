"""
QuickGen Backend: Plan Gating and Free-Tier Quota
=================================================

What:  Decides whether a caller may run an operation, and whether the run
       consumes a free-tier unit.
How:   A static policy table per Operation. authorize() is pure: it only
       looks at the UserContext and never calls out.

Policy:
    Operation           premium_only  metered  creation type
    article             no            yes      article
    blog-title          no            yes      blog-title
    image               yes           no       image
    remove-background   yes           no       image
    remove-object       yes           no       image
    resume-review       yes           no       resume-review

Rules:
    premium plan        → always authorized, counter never read
    premium-only op     → free plan rejected with PlanUpgradeRequiredError
    metered op          → free plan rejected when free_usage >= limit
"""

import enum
from dataclasses import dataclass
from typing import Dict, Optional

from quickgen.config import settings
from quickgen.exceptions import PlanUpgradeRequiredError, UsageLimitReachedError
from quickgen.models.creation import CreationType
from quickgen.schemas.creation import UserContext


class Operation(str, enum.Enum):
    ARTICLE = "article"
    BLOG_TITLE = "blog-title"
    IMAGE = "image"
    REMOVE_BACKGROUND = "remove-background"
    REMOVE_OBJECT = "remove-object"
    RESUME_REVIEW = "resume-review"


@dataclass(frozen=True)
class OperationPolicy:
    operation: Operation
    creation_type: CreationType
    premium_only: bool
    metered: bool


POLICIES: Dict[Operation, OperationPolicy] = {
    policy.operation: policy
    for policy in (
        OperationPolicy(Operation.ARTICLE, CreationType.ARTICLE, premium_only=False, metered=True),
        OperationPolicy(Operation.BLOG_TITLE, CreationType.BLOG_TITLE, premium_only=False, metered=True),
        OperationPolicy(Operation.IMAGE, CreationType.IMAGE, premium_only=True, metered=False),
        OperationPolicy(Operation.REMOVE_BACKGROUND, CreationType.IMAGE, premium_only=True, metered=False),
        OperationPolicy(Operation.REMOVE_OBJECT, CreationType.IMAGE, premium_only=True, metered=False),
        OperationPolicy(Operation.RESUME_REVIEW, CreationType.RESUME_REVIEW, premium_only=True, metered=False),
    )
}


def policy_for(operation: Operation) -> OperationPolicy:
    return POLICIES[operation]


def authorize(user: UserContext, operation: Operation, limit: Optional[int] = None) -> OperationPolicy:
    """
    Gate one request.

    Returns:
        The operation's policy when the caller is allowed through.

    Raises:
        PlanUpgradeRequiredError: premium-only operation on the free plan
        UsageLimitReachedError:   metered operation with free_usage >= limit
    """
    policy = policy_for(operation)
    if user.is_premium:
        return policy

    if policy.premium_only:
        raise PlanUpgradeRequiredError(context={"operation": operation.value})

    ceiling = limit if limit is not None else settings.free_usage_limit
    if policy.metered and user.free_usage >= ceiling:
        raise UsageLimitReachedError(
            free_usage=user.free_usage,
            limit=ceiling,
            context={"operation": operation.value},
        )
    return policy


def consumes_quota(user: UserContext, operation: Operation) -> bool:
    """True when a successful run must record a consumed free-tier unit."""
    return not user.is_premium and policy_for(operation).metered
