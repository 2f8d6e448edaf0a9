# guestguide/base_utils.py


import logging
import re
from collections import OrderedDict

import commentjson
import yaml
from json_repair import repair_json

from guestguide.google_helpers import PROJECT_ID, REGION, LLM_TIMEOUT, GUIDE_LLM_MODEL, CONCIERGE_LLM_MODEL
from guestguide.llm_client import ChatLlmClient


logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n"
)

logger = logging.getLogger("guestguide_backend")

_FENCE_OPEN_RE = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```$")


def strip_markdown_fence(text: str) -> str:
    """
    Removes a markdown code fence wrapping the whole text.
    Text that does not start with a fence is returned unchanged.
    """
    if not text:
        return text
    stripped = text.strip()
    if not stripped.startswith("```"):
        return text
    stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
    stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
    return stripped.strip()


class BaseUtils():
    llm_timeout: float = LLM_TIMEOUT

    # -----------------------
    # General Utils
    # -----------------------

    def clean_triple_backticks(self, code) -> str:
        pattern = r'```[a-zA-Z]*\n?|```\n?'
        return re.sub(pattern, '', code)

    def unsafe_string_format(self, dest_string, print_unused_keys_report=True, **kwargs):
        """
        Formats a destination string by replacing placeholders with corresponding values from kwargs.

        It works differently from the standard "format" method as instead of looking for all the potential keys,
        looks only for the keys as passed in kwargs. JSON braces in prompt templates are left alone.
        """
        missing_keys = []

        def replacer(match):
            key = match.group(1)
            if key in kwargs:
                return str(kwargs[key])
            else:
                missing_keys.append(key)
                return match.group(0)  # Leave the placeholder unchanged

        pattern = re.compile(r'\{(\w+)\}')
        result = pattern.sub(replacer, dest_string)
        if missing_keys and print_unused_keys_report:
            logger.info(f"\033[93m\033[3mMissing keys within string-to-format in unsafe_string_format: {', '.join(missing_keys)}\033[0m")
        return result

    def load_fault_tolerant_json(self, json_str, ensure_ordered=False):
        """
        Loads a JSON-like string produced by an LLM.
        Tries commentjson first, then pyyaml, then json_repair.
        Raises ValueError when nothing manages to produce data.
        """
        def load_json(raw, ensure_ordered):
            err, data = "", None
            try:
                if ensure_ordered:
                    data = commentjson.loads(self.clean_triple_backticks(raw), object_pairs_hook=OrderedDict)
                else:
                    data = commentjson.loads(self.clean_triple_backticks(raw))
                return data, ""
            except Exception as e:
                err = str(e)
                data = None
            try:
                data = yaml.safe_load(self.clean_triple_backticks(raw))
                if isinstance(data, str):
                    raise ValueError("load_fault_tolerant_json: YAML parsing produced a bare string.")
                return data, ""
            except Exception as e:
                err += "\n--\n" + str(e)
                data = None
            return data, err

        data, err = load_json(json_str, ensure_ordered)
        if data:
            return data
        repaired_json_str = repair_json(json_str)
        r_data, r_err = load_json(repaired_json_str, ensure_ordered)
        if r_data:
            return r_data
        raise ValueError(f"load_fault_tolerant_json: JSON parsing failed: {err or r_err}")

    # -----------------------
    # LLM base plumbing
    # -----------------------

    def _build_llms_for_model(self, guide_model: str | None = None, concierge_model: str | None = None,
                              timeout: float | None = None):
        """
        Build the two LLM clients the pipeline needs:
        - the guide client (near-deterministic, JSON responses)
        - the concierge client (free text)
        Falls back to None/None if creation fails.
        """
        if not timeout:
            timeout = self.llm_timeout
        try:
            guide_llm = ChatLlmClient(
                model_name=guide_model or GUIDE_LLM_MODEL,
                vertex_project=PROJECT_ID,
                vertex_region=REGION,
                timeout=timeout,
                temperature=0.1,
                json_mode=True,
            )
            concierge_llm = ChatLlmClient(
                model_name=concierge_model or CONCIERGE_LLM_MODEL,
                vertex_project=PROJECT_ID,
                vertex_region=REGION,
                timeout=timeout,
            )
            return guide_llm, concierge_llm
        except Exception as e:
            logger.info(f"Warning: Could not initialize default LLMs: {e}. ")
            return None, None
