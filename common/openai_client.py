import time
from dataclasses import dataclass
from typing import List, Optional

import openai

from common.config import (
    GENERATIVE_MAX_TOKENS,
    GENERATIVE_TEMPERATURE,
    GENERATIVE_TIMEOUT_SECONDS,
    GENERATIVE_TOP_P,
    OPEN_AI_API_KEY,
    OPEN_AI_MODEL,
)
from common.errors import ErrorKind, GenerationError
from common.utils import Timer, truncate_string


@dataclass
class PromptStats:
    request_time_ms: int = 0  # in milliseconds
    prompt_tokens: int = 0
    completion_tokens: int = 0

    total_requests: int = 0

    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def pretty_print(self):
        return (
            f"{self.total_requests} queries to LLMs ({self.total_tokens()} tokens) "
            f"in {self.request_time_ms/1000:.2f} seconds total query time."
        )


def classify_openai_error(err: Exception) -> ErrorKind:
    # openai.RateLimitError: That model is currently overloaded with other requests.
    if isinstance(err, openai.RateLimitError):
        return ErrorKind.RATE_LIMITED
    # Includes openai.APITimeoutError
    if isinstance(err, openai.APIConnectionError):
        return ErrorKind.TRANSIENT
    # Their fault
    if isinstance(err, openai.InternalServerError):
        return ErrorKind.TRANSIENT
    if isinstance(err, openai.APIStatusError) and err.status_code in (408, 409):
        return ErrorKind.TRANSIENT
    # Our fault: BadRequestError, AuthenticationError, PermissionDeniedError, NotFoundError, ...
    return ErrorKind.PERMANENT


class OpenAiClient:
    def __init__(
        self,
        client: Optional[openai.OpenAI] = None,
        model: str = OPEN_AI_MODEL,
        force_no_print_prompt=False,
    ):
        print(f"OpenAiClient init with model {model}")
        # max_retries=0 as the enhancement stage owns the retry policy.
        self.client = (
            client
            if client is not None
            else openai.OpenAI(
                api_key=OPEN_AI_API_KEY,
                timeout=GENERATIVE_TIMEOUT_SECONDS,
                max_retries=0,
            )
        )
        self.model = model
        self.force_no_print_prompt = force_no_print_prompt
        self.prompt_stats: List[PromptStats] = []

    def sum_up_prompt_stats(self) -> PromptStats:
        stats = PromptStats()
        for prompt_stat in self.prompt_stats:
            stats.prompt_tokens += prompt_stat.prompt_tokens
            stats.completion_tokens += prompt_stat.completion_tokens
            stats.request_time_ms += prompt_stat.request_time_ms
        stats.total_requests = len(self.prompt_stats)
        return stats

    def generate(self, prompt: str) -> str:
        if not self.force_no_print_prompt:
            loggable_prompt = truncate_string(prompt.replace("\n", " "))
            print(f"Asking {self.model} for: {loggable_prompt}")

        start_time = time.time()
        try:
            with Timer(f"{self.model} ChatCompletion"):
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=GENERATIVE_MAX_TOKENS,
                    temperature=GENERATIVE_TEMPERATURE,
                    top_p=GENERATIVE_TOP_P,
                )
        except openai.OpenAIError as err:
            raise GenerationError(
                f"{self.model} request failed with {type(err).__name__}: {err}",
                classify_openai_error(err),
            ) from err

        if not response.choices or not response.choices[0].message.content:
            raise GenerationError(f"{self.model} returned no content", ErrorKind.PERMANENT)
        result = response.choices[0].message.content.strip()

        if response.usage is not None:
            self.prompt_stats.append(
                PromptStats(
                    prompt_tokens=response.usage.prompt_tokens or 0,
                    completion_tokens=response.usage.completion_tokens or 0,
                    request_time_ms=int(1000 * (time.time() - start_time)),
                    total_requests=1,
                )
            )
            print(f"Token usage {self.sum_up_prompt_stats().pretty_print()}")
        return result
