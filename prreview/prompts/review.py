"""Prompts for code review."""

REVIEW_PROMPT_TEMPLATE = """You are performing a code review. Please analyze this code diff and provide a thorough review that covers:

1. Potential conflicts with existing codebase
2. Code correctness and potential bugs
3. Security vulnerabilities or risks
4. Performance implications
5. Maintainability and readability issues
6. Adherence to best practices and coding standards
7. Suggestions for improvements

For each issue found:
- Explain the problem clearly
- Rate the severity (Critical/High/Medium/Low)
- Provide specific recommendations for fixes
- Include code examples where helpful

If no issues are found in a particular area, explicitly state that. If it's a dependency update, evaluate with strict scrutiny the implications of the change.

Here is the code diff to review:

```
{diff}
```"""


def build_review_prompt(diff: str) -> str:
    """Build the user prompt for code review. The diff is embedded verbatim."""
    return REVIEW_PROMPT_TEMPLATE.replace("{diff}", diff)
