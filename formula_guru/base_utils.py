# formula_guru/base_utils.py

import logging
import re

import commentjson
import yaml
from json_repair import repair_json

from formula_guru.errors import UpstreamFormatError

logger = logging.getLogger("formula_guru")


class BaseUtils():

    # -----------------------
    # General Utils
    # -----------------------

    def clean_triple_backticks(self, code) -> str:
        pattern = r'```[a-zA-Z]*\n?|```\n?'
        return re.sub(pattern, '', code)

    def extract_json_object(self, text: str) -> str:
        """Best-effort cut from the first '{' to the last '}'."""
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return text
        return text[start:end + 1]

    def unsafe_string_format(self, dest_string, print_unused_keys_report=True, **kwargs):
        """
        Formats a destination string by replacing placeholders with corresponding values from kwargs.

        it works differently from the standard "format" method as instead of looking for all the potential keys,
        looks only for the keys as passed in kwargs, so literal JSON braces in templates stay untouched
        """
        missing_keys = []

        def replacer(match):
            key = match.group(1)
            if key in kwargs:
                return str(kwargs[key])
            missing_keys.append(key)
            return match.group(0)

        pattern = re.compile(r'\{(\w+)\}')
        result = pattern.sub(replacer, dest_string)
        if missing_keys and print_unused_keys_report:
            logger.debug(f"Missing keys within string-to-format in unsafe_string_format: {', '.join(missing_keys)}")
        return result

    # -----------------------
    # Tolerant JSON
    # -----------------------

    def load_fault_tolerant_json(self, json_str) -> dict:
        """
        Parse a model response into a dict: fences stripped, first '{' to last '}',
        then commentjson, YAML and json_repair in turn.
        Raises UpstreamFormatError when nothing yields an object.
        """
        def sanitize_json_string(input_str):
            # comments outside of strings, then literal newlines inside strings
            no_comments = re.sub(r'^\s*//.*?$|/\*.*?\*/', '', input_str, flags=re.MULTILINE | re.DOTALL)

            def process_string_segment(match):
                content = match.group(1)
                content = re.sub(r'(?<!\\)\n', r'\\n', content)
                return f'"{content}"'

            return re.sub(r'(?<!\\)"((?:[^"\\]|\\.)*?)"', process_string_segment, no_comments, flags=re.DOTALL)

        def load_json(candidate):
            err = ""
            try:
                return commentjson.loads(candidate), ""
            except Exception as e:
                err = str(e)
            try:
                data = yaml.safe_load(sanitize_json_string(candidate))
                if isinstance(data, dict):
                    return data, ""
                err += "\n--\nYAML parsing did not yield an object"
            except yaml.YAMLError as e:
                err += "\n--\n" + str(e)
            return None, err

        text = self.extract_json_object(self.clean_triple_backticks(json_str or "").strip())
        if not text:
            raise UpstreamFormatError("Empty response from the analysis model")

        data, err = load_json(text)
        if not isinstance(data, dict):
            repaired = repair_json(text)
            data, r_err = load_json(repaired) if isinstance(repaired, str) and repaired else (None, "")
            err = r_err or err
        if not isinstance(data, dict):
            logger.warning(f"load_fault_tolerant_json: JSON parsing failed: {err}")
            raise UpstreamFormatError("Could not parse the analysis model response")
        return data
