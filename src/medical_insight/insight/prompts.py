# ============================================================================
# src/medical_insight/insight/prompts.py
# ============================================================================
"""
Insight Prompt Templates

The system prompt pins the response to a JSON object with fixed field
names; the user prompt names the file and carries extracted text when
the document is not an image.
"""

from typing import Optional

SYSTEM_PROMPT = """You are an expert medical document analyst. Provide detailed, actionable insights from medical documents.

Respond with a single valid JSON object and nothing else. Required structure:
{
  "summary": "Description of the document and its key findings",
  "keyFindings": ["specific conditions, results or observations"],
  "recommendations": ["specific, actionable recommendations"],
  "medicalTerms": ["medical terminology found in the document"],
  "metrics": ["measurements with values and units"],
  "urgentItems": ["findings that need prompt attention"],
  "confidence": 0.9,
  "category": "Type of document (e.g. Lab Report, Prescription, X-Ray Report)"
}

Requirements:
1. Identify conditions, test results, medications and dosages
2. Provide 5-8 recommendations specific to the document content
3. Highlight urgent or abnormal findings
4. Include measurements with proper units
5. confidence is a number between 0 and 1"""

# Extracted text beyond this is truncated in the prompt
MAX_PROMPT_TEXT = 12000


def build_insight_prompt(filename: str, document_text: Optional[str] = None) -> str:
    """User prompt for one document."""
    prompt = (
        f"Analyze this medical document: {filename}.\n\n"
        "Provide detailed findings with specific values, at least 5 personalized "
        "recommendations, any urgent items, and the document category."
    )

    if document_text:
        text = document_text[:MAX_PROMPT_TEXT]
        prompt += f"\n\nDocument text:\n\"\"\"\n{text}\n\"\"\""

    return prompt
