"""
Coaching prompt builder - Constructs system and user prompts from modular components.

Each coaching task combines the shared coach persona with a task-specific
output contract. User prompts are templates with {{VARIABLE}} placeholders.
"""

import re
from typing import Dict, List, Any, Optional
from dataclasses import dataclass


@dataclass
class PromptComponent:
    """Represents a reusable prompt component"""
    name: str
    content: str
    required: bool = True


COACH_ROLE = """You are the Ignite coach, an experienced business coach helping entrepreneurs
build their messaging strategy, design their offer and write their sales page.

You give honest, specific and encouraging feedback. You always refer to what the
person actually wrote, you never invent facts about their business, and you push
for concrete detail: real customer language, specific outcomes, numbers and stories."""

JSON_RULES = """## Output Rules

Respond with a single JSON object and nothing else.
Do not wrap it in prose. Use double quotes for all keys and strings."""

AI_FEEDBACK_FORMAT = """## Task: Rate a workbook answer

Rate the depth of the answer using exactly one level:
- "excellent-depth": specific, emotionally resonant, grounded in real customer insight
- "good-start": on the right track but missing specifics or examples
- "needs-more-detail": vague, generic or too short to be useful

Return:
{"level": "<level>", "levelDescription": "<one short sentence>", "feedback": "<2-4 sentences of coaching>"}"""

INTERACTIVE_FORMAT = """## Task: Help expand a workbook answer

Give brief feedback on the answer, then ask up to three follow-up prompts the
person can answer to deepen it. Each prompt should be answerable in a sentence or two.

Return:
{"level": "<excellent-depth|good-start|needs-more-detail>", "levelDescription": "<short sentence>",
 "feedback": "<2-3 sentences>", "interactivePrompts": ["<question>", "..."]}"""

REAL_TIME_FORMAT = """## Task: Live feedback while the person types

Pick one status:
- "typing": too early to judge
- "good-start": the core idea is there
- "developing": good material that needs sharpening
- "strong": ready to use

Return:
{"status": "<status>", "encouragement": "<one sentence>", "suggestions": ["..."],
 "examples": ["..."], "rewording": "<optional improved version>", "reasoning": "<why>",
 "nextSteps": ["..."]}"""

SALES_COACHING_FORMAT = """## Task: Coach a sales page section

Score the section from 1 to 5 on emotional depth, clarity and persuasion, then pick a level:
- "high-converting": ready to publish
- "good-foundation": solid but can be stronger
- "needs-more-depth": missing the emotional or specific detail buyers need

Return:
{"level": "<level>", "levelDescription": "<short sentence>", "feedback": "<2-4 sentences>",
 "suggestions": ["..."], "emotionalDepthScore": <1-5>, "clarityScore": <1-5>,
 "persuasionScore": <1-5>, "improvements": ["..."], "examples": ["..."]}"""

SALES_IMPROVEMENT_FORMAT = """## Task: Rewrite a sales page section

Write two or three alternative versions of the section that keep the person's
facts and voice but are clearer and more persuasive.

Return:
{"improvements": ["<version 1>", "<version 2>"]}"""


AI_FEEDBACK_TEMPLATE = """Workbook step {{STEP_NUMBER}}, section "{{SECTION_TITLE}}".

Question: {{QUESTION_TEXT}}

Answer:
{{RESPONSE_TEXT}}"""

INTERACTIVE_TEMPLATE = """Section: {{SECTION}}

Question: {{QUESTION_CONTEXT}}

Current answer:
{{USER_RESPONSE}}"""

REAL_TIME_TEMPLATE = """Context: {{SECTION_CONTEXT}}

Question: {{QUESTION}}

What they have written so far:
{{USER_RESPONSE}}"""

SALES_COACHING_TEMPLATE = """Sales page section type: {{SECTION_TYPE}}

Section content:
{{USER_INPUT}}"""

SALES_IMPROVEMENT_TEMPLATE = """Sales page section type: {{SECTION_TYPE}}

Current content:
{{CURRENT_CONTENT}}"""


# Task name -> (output contract component, user prompt template)
TASKS = {
    "ai_feedback": ("AI_FEEDBACK_FORMAT", AI_FEEDBACK_TEMPLATE),
    "interactive": ("INTERACTIVE_FORMAT", INTERACTIVE_TEMPLATE),
    "real_time": ("REAL_TIME_FORMAT", REAL_TIME_TEMPLATE),
    "sales_coaching": ("SALES_COACHING_FORMAT", SALES_COACHING_TEMPLATE),
    "sales_improvement": ("SALES_IMPROVEMENT_FORMAT", SALES_IMPROVEMENT_TEMPLATE),
}


class CoachingPromptBuilder:
    """
    Builds coaching prompts from modular components.

    Components can be:
    - Coach persona
    - Output rules
    - Task-specific output contracts
    """

    def __init__(self):
        self.components: Dict[str, PromptComponent] = {}
        self._register_default_components()

    def _register_default_components(self):
        """Register default prompt components"""
        self.register(PromptComponent(name="COACH_ROLE", content=COACH_ROLE))
        self.register(PromptComponent(name="JSON_RULES", content=JSON_RULES))

        # Task contracts are opt-in per call
        for name, content in (
            ("AI_FEEDBACK_FORMAT", AI_FEEDBACK_FORMAT),
            ("INTERACTIVE_FORMAT", INTERACTIVE_FORMAT),
            ("REAL_TIME_FORMAT", REAL_TIME_FORMAT),
            ("SALES_COACHING_FORMAT", SALES_COACHING_FORMAT),
            ("SALES_IMPROVEMENT_FORMAT", SALES_IMPROVEMENT_FORMAT),
        ):
            self.register(PromptComponent(name=name, content=content, required=False))

    def register(self, component: PromptComponent):
        """Register a prompt component"""
        self.components[component.name] = component

    def build(
        self,
        include: Optional[List[str]] = None,
        exclude: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Build a system prompt.

        Args:
            include: Extra component names to include after the required ones
            exclude: Component names to exclude
            context: Context data to substitute into {{VARIABLE}} placeholders

        Returns:
            Complete system prompt string
        """
        components_to_use = [comp for comp in self.components.values() if comp.required]

        if include:
            components_to_use.extend(
                self.components[name]
                for name in include
                if name in self.components and not self.components[name].required
            )

        if exclude:
            components_to_use = [
                comp for comp in components_to_use
                if comp.name not in exclude
            ]

        sections = []
        for component in components_to_use:
            content = component.content
            if context:
                content = render(content, context)
            sections.append(content)

        return "\n\n====\n\n".join(sections)

    def build_for_task(self, task: str, context: Dict[str, Any]) -> tuple:
        """
        Build the (system prompt, user prompt) pair for a coaching task.

        Raises:
            KeyError: If the task is unknown
        """
        contract, template = TASKS[task]
        return self.build(include=[contract]), render(template, context)


def render(template: str, context: Dict[str, Any]) -> str:
    """Replace {{VARIABLE}} placeholders with context values"""

    def replace_var(match):
        var_name = match.group(1)
        return str(context.get(var_name, match.group(0)))

    return re.sub(r'\{\{(\w+)\}\}', replace_var, template)
