"""
Customer experience action plan generated from step 3 answers.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Set, Tuple


@dataclass
class ActionItem:
    id: str
    category: str
    priority: str
    timeframe: str
    title: str
    description: str
    steps: List[str]
    depends_on: List[str] = field(default_factory=list)

    def to_text(self) -> str:
        steps = "\n".join(f"{i}. {step}" for i, step in enumerate(self.steps, 1))
        return (
            f"{self.title} ({self.timeframe})\n"
            f"Priority: {self.priority.upper()}\n"
            f"{self.description}\n\n"
            f"Steps:\n{steps}\n\n---"
        )


# Answer keys that enable each group of actions
TRIGGERS: Dict[str, Tuple[str, ...]] = {
    "onboarding": ("onboarding-0", "onboarding-1", "onboarding-2"),
    "communication": ("communication-0", "communication-1"),
    "support": ("support-0", "support-1", "support-2", "support-3"),
    "success": ("success-measurement-0", "success-measurement-1"),
}

ACTION_TEMPLATES: List[Tuple[str, ActionItem]] = [
    ("onboarding", ActionItem(
        id="onboarding-sequence",
        category="Onboarding",
        priority="high",
        timeframe="Week 1",
        title="Create Welcome Email Sequence",
        description="Set up automated emails for the first 48 hours after purchase",
        steps=[
            "Write welcome email with access instructions",
            "Create quick win or first action email",
            "Set up access credentials delivery system",
            "Test the complete sequence",
        ],
    )),
    ("onboarding", ActionItem(
        id="customer-portal",
        category="Onboarding",
        priority="high",
        timeframe="Week 1",
        title="Set Up Customer Access Portal",
        description="Create the platform where customers will access your content",
        steps=[
            "Choose platform (course site, membership area, etc.)",
            "Set up user accounts and login system",
            "Upload initial content and resources",
            "Create navigation and user experience",
        ],
    )),
    ("communication", ActionItem(
        id="communication-cadence",
        category="Engagement",
        priority="high",
        timeframe="Week 2",
        title="Implement Communication Schedule",
        description="Set up regular touchpoints to maintain engagement",
        steps=[
            "Schedule weekly check-in emails",
            "Create milestone celebration templates",
            "Set up progress tracking notifications",
            "Plan community or group interaction points",
        ],
    )),
    ("support", ActionItem(
        id="support-channels",
        category="Support",
        priority="medium",
        timeframe="Week 2-3",
        title="Establish Support Channels",
        description="Create clear pathways for customers to get help",
        steps=[
            "Set up primary support email/system",
            "Create FAQ or knowledge base",
            "Define response time commitments",
            "Train yourself or team on support protocols",
        ],
    )),
    ("support", ActionItem(
        id="self-service-resources",
        category="Support",
        priority="medium",
        timeframe="Week 3",
        title="Build Self-Service Resources",
        description="Create resources customers can use to help themselves",
        steps=[
            "Compile frequently asked questions",
            "Create helpful video tutorials",
            "Design templates and worksheets",
            "Organize resources in easy-to-find locations",
        ],
    )),
    ("success", ActionItem(
        id="success-metrics",
        category="Outcomes",
        priority="medium",
        timeframe="Week 3-4",
        title="Implement Success Tracking",
        description="Create systems to measure and celebrate customer progress",
        steps=[
            "Define clear success metrics and milestones",
            "Set up progress tracking system",
            "Create before/after documentation process",
            "Plan celebration and recognition events",
        ],
    )),
    ("success", ActionItem(
        id="testimonial-collection",
        category="Outcomes",
        priority="low",
        timeframe="Week 4+",
        title="Success Story Collection Process",
        description="Systematically gather testimonials and case studies",
        steps=[
            "Create success story interview template",
            "Set up automated testimonial requests",
            "Design case study documentation process",
            "Plan success story sharing and marketing",
        ],
        depends_on=["success-metrics"],
    )),
]

# Always part of the plan
JOURNEY_ACTION = ActionItem(
    id="customer-journey-documentation",
    category="Foundation",
    priority="high",
    timeframe="Week 1",
    title="Document Complete Customer Journey",
    description="Create a visual map of your customer's entire experience",
    steps=[
        "Map all touchpoints from purchase to completion",
        "Identify potential friction points",
        "Design solutions for common obstacles",
        "Share journey map with any team members",
    ],
)


@dataclass
class ActionPlan:
    """Generated actions plus which of them the user has completed"""
    actions: List[ActionItem]
    completed: Set[str] = field(default_factory=set)

    def toggle(self, action_id: str) -> bool:
        """
        Flip an action's completed state.

        Returns:
            New completed state
        """
        if action_id in self.completed:
            self.completed.discard(action_id)
            return False
        self.completed.add(action_id)
        return True

    def stats(self) -> Dict[str, int]:
        total = len(self.actions)
        done = len(self.completed)
        return {
            "total": total,
            "completed": done,
            "percentage": round(done / total * 100) if total else 0,
        }

    def export_text(self) -> str:
        return "\n\n".join(action.to_text() for action in self.actions)


def _copy(item: ActionItem) -> ActionItem:
    return replace(item, steps=list(item.steps), depends_on=list(item.depends_on))


def generate_action_plan(responses: Mapping[str, str]) -> ActionPlan:
    """Build the action plan from the answer groups the user filled in"""
    enabled = {
        group for group, keys in TRIGGERS.items()
        if any(responses.get(key) for key in keys)
    }

    actions = [
        _copy(template) for group, template in ACTION_TEMPLATES if group in enabled
    ]
    actions.append(_copy(JOURNEY_ACTION))

    return ActionPlan(actions=actions)
