"""
Sage Router - Prompt Assembly

User prompts for direct generation and for reasoning turns.
"""

DEFAULT_SYSTEM_PROMPT = (
    "You are a senior marketing strategist. Answer with specific, "
    "well-structured recommendations grounded in the supplied research."
)


def compose_user_prompt(query: str, context: str = "") -> str:
    """Query followed by the auxiliary context block, when there is one."""
    if not context or not context.strip():
        return query
    return (
        f"{query}\n\n"
        f"=== RESEARCH CONTEXT ===\n{context.strip()}\n=== END RESEARCH CONTEXT ==="
    )


def compose_refinement_prompt(
    query: str,
    draft: str,
    focus: str,
    context: str = "",
) -> str:
    """Ask for a revised draft concentrating on one focus aspect."""
    prompt = (
        f"Original request:\n{query}\n\n"
        f"Current draft:\n{draft}\n\n"
    )
    if context and context.strip():
        prompt += f"=== RESEARCH CONTEXT ===\n{context.strip()}\n=== END RESEARCH CONTEXT ===\n\n"
    prompt += (
        f"Revise the draft, focusing on {focus}. "
        "Tighten the wording, verify each claim against the research context "
        "and expand where the draft is thin. Return the complete revised answer only."
    )
    return prompt
