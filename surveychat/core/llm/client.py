"""LLM client for OpenAI chat completions."""

import json
import openai
from typing import Dict, List, Any, Optional
import logging

from surveychat.config import get_settings
from surveychat.utils.exceptions import LLMException

logger = logging.getLogger(__name__)
settings = get_settings()


CHAT_SYSTEM_PROMPT = """You are a senior data analyst who knows this survey dataset inside and out. \
Talk about it the way you would with a colleague: naturally and conversationally.

How you communicate:
- Lead with the "so what". Say why a number is interesting, not just what it is.
- Match the depth of the question. Simple questions get short answers.
- Pick the two or three most compelling facts instead of dumping statistics.
- Use numbers to support a point ("about two-thirds of respondents") rather than as the point.
- If something is surprising, say so. If it is what you would expect, say that too.

Your knowledge base:

{summary}

When you need to compute something over the full dataset, include exactly one JSON code block \
holding a single Python expression. The expression is evaluated with `df` (a pandas DataFrame \
whose cells are all strings), `rows` (a list of dicts), `pd` and `np` in scope. Convert numeric \
columns with pd.to_numeric(df[col], errors="coerce"). No imports, no statements.

```json
{{"compute": "<python expression>"}}
```

Set up what you are looking into before the block; the block is replaced by its result.

If the data cannot answer the question, say so and suggest what would be needed."""

VIZ_MODE_INSTRUCTIONS = """

The user wants a chart. In addition to your answer, include one JSON code block describing it:

```json
{{"chart": {{"type": "bar|pie|scatter|histogram", "xColumn": "<column>", "yColumn": "<numeric column or omit>", \
"aggregation": "count|average|sum|none", "title": "<short title>"}}}}
```

Rules: bar/pie group by a categorical xColumn with count, average or sum (average and sum need a \
numeric yColumn); scatter needs two numeric columns; histogram takes one numeric xColumn. \
Only use these columns: {columns}"""

RECIPE_SYSTEM_PROMPT = """You are a data visualization expert building an overview dashboard for a survey dataset.
Your task is to choose charts that together tell the most useful story about the respondents.

Always respond with valid JSON in the exact format requested."""

RECIPE_USER_PROMPT = """Dataset summary:

{summary}

Choose {count} charts. Each chart is a recipe:
- "type": "bar" | "pie" | "scatter" | "histogram"
- "xColumn": an existing column name (copy it exactly)
- "yColumn": a numeric column, only for bar/pie with average or sum, and for scatter
- "aggregation": "count" | "average" | "sum" for bar/pie, "none" for scatter/histogram
- "title": short chart title
- "description": one sentence on what the chart shows

Prefer bar charts over pie charts when a column has more than 6 values.
Available columns: {columns}

Respond in JSON format:
{{"recipes": [{{"type": "bar", "xColumn": "...", "aggregation": "count", "title": "...", "description": "..."}}]}}"""


class LLMClient:
    """Client for interacting with OpenAI GPT models."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self.max_tokens = settings.llm_max_tokens
        self._client: Optional[openai.AsyncOpenAI] = None

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise LLMException("OpenAI API key is not configured", error_code="LLM_NOT_CONFIGURED")
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def answer_question(
        self, question: str, summary: str, columns: List[str], viz_mode: bool = False
    ) -> str:
        """
        Answer a free-text question about the dataset.

        Args:
            question: User question
            summary: Dataset summary text for the system prompt
            columns: Available column names
            viz_mode: Whether the reply should carry a chart recipe

        Returns:
            Raw reply text, possibly containing compute or chart blocks
        """
        system_prompt = CHAT_SYSTEM_PROMPT.format(summary=summary)
        if viz_mode:
            system_prompt += VIZ_MODE_INSTRUCTIONS.format(columns=", ".join(columns))

        return await self._make_llm_request(
            system_prompt=system_prompt, user_prompt=question, temperature=0.7
        )

    async def generate_recipes(
        self, summary: str, columns: List[str], count: int
    ) -> List[Dict[str, Any]]:
        """
        Ask the model for dashboard chart recipes.

        Args:
            summary: Dataset summary text
            columns: Available column names
            count: Number of charts wanted

        Returns:
            Raw recipe dictionaries (validated by the caller)
        """
        user_prompt = RECIPE_USER_PROMPT.format(
            summary=summary, count=count, columns=", ".join(columns)
        )

        try:
            response = await self._make_llm_request(
                system_prompt=RECIPE_SYSTEM_PROMPT, user_prompt=user_prompt, temperature=0.4
            )
            result = json.loads(self._extract_json_from_response(response))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse LLM JSON response: {e}")
            raise LLMException("LLM returned invalid JSON response")

        recipes = result.get("recipes") if isinstance(result, dict) else result
        if not isinstance(recipes, list):
            raise LLMException("LLM response does not contain a recipe list")

        logger.info(f"LLM proposed {len(recipes)} chart recipes")
        return recipes

    def _extract_json_from_response(self, response: str) -> str:
        """Extract JSON content from LLM response, handling markdown code blocks."""
        response_content = response.strip()

        if response_content.startswith("```json") and response_content.endswith("```"):
            json_start = response_content.find("```json") + 7  # Length of '```json'
            json_end = response_content.rfind("```")
            response_content = response_content[json_start:json_end].strip()
        elif response_content.startswith("```") and response_content.endswith("```"):
            json_start = response_content.find("```") + 3
            json_end = response_content.rfind("```")
            response_content = response_content[json_start:json_end].strip()

        return response_content

    async def _make_llm_request(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
    ) -> str:
        """
        Make a standard LLM request.

        Args:
            system_prompt: System instruction
            user_prompt: User query
            temperature: Sampling temperature

        Returns:
            LLM response text
        """
        client = self.client
        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            logger.error(f"LLM request failed: {e}")
            raise LLMException(f"Failed to get LLM response: {str(e)}")

        response = completion.choices[0].message.content
        if not response:
            raise LLMException("Empty response from OpenAI")

        logger.info(f"LLM request successful with model: {self.model}")
        return response


# Global client instance
llm_client = LLMClient()
