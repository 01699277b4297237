"""Prompt templates for code analysis, generation, debugging, docs and tests."""
import logging
from typing import List, Optional

from services.llm_client import LLMClient
from services.retrieval_engine import RetrievalEngine

logger = logging.getLogger(__name__)

ANALYSIS_CHAR_LIMIT = 3000

ANALYZE_TEMPLATE = """Analyze the following code.

File: {file_path}
Analysis type: {analysis_type}

Code:
```
{code}
```

Cover:
- Code quality
- Security issues
- Performance
- Best practices
- Suggested improvements"""

GENERATE_TEMPLATE = """Write {language} code for the following request:

{prompt}

{context}

Requirements:
- High quality, readable code
- Helpful comments
- Error handling
- Type definitions where the language has them"""

DEBUG_TEMPLATE = """Help debug the following code.

File: {file_path}
Error: {error}

Code:
```
{code}
```

Provide:
- The root cause
- A proposed fix
- The corrected code
- How to prevent a recurrence"""

DOCS_TEMPLATE = """Write {doc_type} documentation for the following code.

File: {file_path}

Code:
```
{code}
```

Include:
- What each function or class does
- Parameters
- Return values
- Usage examples
- Caveats"""

TESTS_TEMPLATE = """Write {test_framework} tests for the following code.

File: {file_path}

Code:
```
{code}
```

Test requirements:
- Unit tests
- Edge cases
- Error cases
- Mocks where needed
- Meaningful assertions"""

FILE_ANALYSIS_TEMPLATE = """Analyze the following source file.

File: {file_path}

Code:
```
{code}
```

Cover:
- Purpose and behavior of the file
- Main classes and functions
- Dependencies
- Improvements or risks, if any"""


class CodeAssistant:
    """One-shot code tasks sent straight to the completion provider."""

    def __init__(self, llm_client: LLMClient, retrieval_engine: Optional[RetrievalEngine] = None):
        self.llm_client = llm_client
        self.retrieval_engine = retrieval_engine

    def analyze_code(self, code: str, file_path: str, analysis_type: str = "general") -> str:
        prompt = ANALYZE_TEMPLATE.format(file_path=file_path, analysis_type=analysis_type, code=code)
        return self.llm_client.generate(prompt, temperature=0.1, max_tokens=1500).text

    def generate_code(self, prompt: str, language: str = "typescript", context: Optional[List[str]] = None) -> str:
        context_text = "Reference context:\n" + "\n\n".join(context) if context else ""
        full_prompt = GENERATE_TEMPLATE.format(language=language, prompt=prompt, context=context_text)
        return self.llm_client.generate(full_prompt, temperature=0.2, max_tokens=2000).text

    def debug_code(self, code: str, error: Optional[str], file_path: str) -> str:
        prompt = DEBUG_TEMPLATE.format(file_path=file_path, error=error or "general debugging", code=code)
        return self.llm_client.generate(prompt, temperature=0.1, max_tokens=1500).text

    def generate_docs(self, code: str, file_path: str, doc_type: str = "jsdoc") -> str:
        prompt = DOCS_TEMPLATE.format(doc_type=doc_type, file_path=file_path, code=code)
        return self.llm_client.generate(prompt, temperature=0.1, max_tokens=1500).text

    def generate_tests(self, code: str, file_path: str, test_framework: str = "jest") -> str:
        prompt = TESTS_TEMPLATE.format(test_framework=test_framework, file_path=file_path, code=code)
        return self.llm_client.generate(prompt, temperature=0.2, max_tokens=2000).text

    def analyze_file(self, path_fragment: str) -> Optional[str]:
        """
        Analyze an indexed file from its stored chunks.

        Chunks overlap, so the rebuilt text repeats some lines; it is cut
        at ``ANALYSIS_CHAR_LIMIT`` characters.

        Returns:
            The analysis, or None when no stored chunk matches the path
        """
        if self.retrieval_engine is None:
            raise ValueError("analyze_file needs a retrieval engine")

        records = self.retrieval_engine.find_by_path(path_fragment)
        if not records:
            logger.info(f"No indexed chunks match {path_fragment}")
            return None

        full_content = "\n".join(record.content for record in records)
        code = full_content[:ANALYSIS_CHAR_LIMIT]
        if len(full_content) > ANALYSIS_CHAR_LIMIT:
            code += "\n...(truncated)"

        prompt = FILE_ANALYSIS_TEMPLATE.format(file_path=path_fragment, code=code)
        return self.llm_client.generate(prompt, temperature=0.1, max_tokens=1000).text
