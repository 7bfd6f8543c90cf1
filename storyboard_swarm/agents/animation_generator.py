"""Animation Code Generator Agent for converting page analysis into scene code.

The agent asks the model for a Remotion/React component that visualizes a
page's concepts and facts. Whatever the model returns, the agent always hands
back a well-formed scene: a fenced code block is unwrapped when present, and
output that is empty or implausibly short is replaced by a deterministic
scene that shows the page number and a title fragment.
"""

import json
import logging
import re
from typing import Optional

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.agents.json_sanitizer import extract_json
from storyboard_swarm.agents.page_input import PageAnalysisInput, is_page_analysis_input
from storyboard_swarm.agents.text_generation import TextGenerationClient

logger = logging.getLogger(__name__)


CODE_BLOCK_PATTERN = re.compile(r"```(?:tsx|jsx|typescript|ts|javascript|js)?\n?([\s\S]*?)```")

# Anything shorter than this cannot be a usable component
MIN_CODE_LENGTH = 50

TITLE_FRAGMENT_CHARS = 50


def fallback_scene(page_number: int, paper_title: str) -> str:
    """Deterministic scene used when the model produced no usable code."""
    return f"""// Page {page_number} Animation - Fallback
import {{ AbsoluteFill, useCurrentFrame, interpolate }} from 'remotion';

export const Page{page_number}Scene: React.FC = () => {{
  const frame = useCurrentFrame();
  const opacity = interpolate(frame, [0, 30], [0, 1]);

  return (
    <AbsoluteFill style={{{{
      backgroundColor: '#0a0a0a',
      justifyContent: 'center',
      alignItems: 'center',
      color: 'white',
      fontSize: 48
    }}}}>
      <div style={{{{ opacity }}}}>
        Page {page_number}: {paper_title[:TITLE_FRAGMENT_CHARS]}
      </div>
    </AbsoluteFill>
  );
}};"""


def failed_page_scene(page_number: int) -> str:
    """Scene used for a page whose whole pipeline failed."""
    return f"""// Page {page_number} - Fallback (processing error)
import {{ AbsoluteFill }} from 'remotion';
export const Page{page_number}Scene: React.FC = () => (
  <AbsoluteFill style={{{{ backgroundColor: '#1a1a1a', color: 'white', justifyContent: 'center', alignItems: 'center' }}}}>
    <div>Page {page_number} content could not be processed</div>
  </AbsoluteFill>
);"""


def unwrap_code_block(text: str) -> Optional[str]:
    """Return the body of the first fenced code block, if any."""
    match = CODE_BLOCK_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return None


class AnimationCodeGeneratorAgent(Agent):
    """Agent responsible for generating the per-page scene component.

    The Animation Code Generator:
    - Sends the page number, title, top concepts and top facts to the model
    - Reads ``animation_code`` from the JSON reply, or a fenced block in the raw reply
    - Unwraps fenced code blocks
    - Substitutes the fallback scene when the result is below MIN_CODE_LENGTH
    """

    MAX_CONCEPTS = 3
    MAX_FACTS = 3

    def __init__(self, text_client: TextGenerationClient):
        self.text_client = text_client

    async def execute(self, input_data: PageAnalysisInput) -> str:
        """Generate scene code for one page.

        Returns:
            Scene component source; never empty
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be PageAnalysisInput with page content and context",
                {"input_type": type(input_data).__name__}
            )

        page_number = input_data.page_number
        context = input_data.context
        logger.info(f"Animation agent: generating animation code for page {page_number}")

        response = await self.text_client.generate(
            self._system_prompt(page_number, context.paper_title),
            f"Generate animation code for:\n\n{json.dumps(self._payload(input_data), indent=2)}"
        )

        code = self._extract_code(response)
        if len(code) < MIN_CODE_LENGTH:
            logger.warning(
                f"Page {page_number}: animation code missing or too short ({len(code)} chars), using fallback scene"
            )
            return fallback_scene(page_number, context.paper_title)
        return code

    def _payload(self, input_data: PageAnalysisInput) -> dict:
        return {
            "page": input_data.page_number,
            "title": input_data.context.paper_title,
            "concepts": [
                {"term": c.term, "analogy": c.beginner_analogy}
                for c in input_data.concepts[:self.MAX_CONCEPTS]
            ],
            "facts": [f.fact for f in input_data.facts[:self.MAX_FACTS]]
        }

    def _extract_code(self, response: str) -> str:
        parsed = extract_json(response, {"animation_code": ""})
        code = parsed.get("animation_code")
        if not isinstance(code, str) or not code.strip():
            # TSX bodies contain braces, so a bare fenced reply does not parse as JSON
            code = response or ""
            unwrapped = unwrap_code_block(code)
            return unwrapped if unwrapped is not None else ""

        unwrapped = unwrap_code_block(code)
        return unwrapped if unwrapped is not None else code.strip()

    def _system_prompt(self, page_number: int, paper_title: str) -> str:
        return f"""You are the Visual Code Generator for page {page_number} of "{paper_title}".

Generate procedural animation code that visually represents the concepts and formulas from this page.

You MUST output a Remotion/React component that can be rendered as an animation. Use SVG elements for shapes and framer-motion style animations.

Example output format:
```tsx
// Page {page_number} Animation Component
import {{ AbsoluteFill, useCurrentFrame, interpolate }} from 'remotion';

export const Page{page_number}Scene: React.FC = () => {{
  const frame = useCurrentFrame();

  // Animation logic here
  const opacity = interpolate(frame, [0, 30], [0, 1]);
  const scale = interpolate(frame, [0, 30], [0.5, 1]);

  return (
    <AbsoluteFill style={{{{ backgroundColor: '#0a0a0a' }}}}>
      {{/* Visual elements representing concepts */}}
      <svg viewBox="0 0 800 600">
        {{/* Animated shapes here */}}
      </svg>
    </AbsoluteFill>
  );
}};
```

Respond with JSON:
{{
  "animation_code": "// The complete component code here"
}}"""

    def validate_input(self, input_data: AgentInput) -> bool:
        return is_page_analysis_input(input_data)
