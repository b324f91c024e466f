"""
Fixed task description sent to the classifier with every batch
"""

import json
from typing import Any, Dict, List

from core.config import MIN_CONTRACT_VALUE

SYSTEM_PROMPT = (
    "You are an independent reviewer of government procurement with expertise in "
    "spotting high-risk contracts that deserve public scrutiny. Focus on systemic "
    "issues, potential conflicts of interest and significant public spending "
    "concerns. Explain clearly what each contract was for."
)

_TASK_TEMPLATE = """Review these Canadian federal government contracts (value >= ${min_value:,}) and pick out the ones that raise high-risk concerns worth public scrutiny.

Indicators to weigh:

1. Procurement process
   - Single-bid awards (number_of_bids)
   - Limited tendering and its justification (limited_tendering_reason)
   - Trade agreement exceptions (trade_agreement_exceptions)
   - Unusual solicitation procedures (solicitation_procedure)

2. Financial red flags
   - Large amendments (contract_value against original_value)
   - Possible contract splitting just under thresholds
   - Costs out of line with similar services

3. Conflict of interest
   - Former public servant involvement (former_public_servant)
   - Minister's office contracts (ministers_office)
   - Vendor concentration
   - Geographic anomalies (vendor_postal_code)

4. Timeline
   - Unusual periods (contract_period_start against delivery_date)
   - Amendments without a stated reason (comments_en)

5. Public interest
   - Consulting and professional services with vague deliverables
   - IT system implementations
   - Sole-source awards over $100,000
   - Minister's office spending

Answer with a JSON object listing only the contracts of interest (an empty list is a valid answer):
{{
  "contracts": [
    {{
      "contract_id": "<procurement_id>",
      "vendor_name": "<vendor_name>",
      "value": "<contract_value>",
      "description": "<description_en, cleaned and summarised>",
      "original_value": "<original_value>",
      "amendment_value": "<amendment_value>",
      "start_date": "<contract_period_start>",
      "end_date": "<delivery_date>",
      "number_of_bids": "<number_of_bids>",
      "procurement_type": "<derived from commodity_type and description>",
      "reason_for_flag": "<short explanation of the main concerns>",
      "risk_level": "<high|medium|low>",
      "risk_factors": {{
        "procurement_issues": ["..."],
        "financial_issues": ["..."],
        "conflict_of_interest": ["..."],
        "timeline_issues": ["..."],
        "public_interest_factors": ["..."]
      }}
    }}
  ]
}}

Contracts to review:
{contracts}"""


def build_messages(records: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Chat messages for one batch of candidate records."""
    task = _TASK_TEMPLATE.format(
        min_value=MIN_CONTRACT_VALUE,
        contracts=json.dumps(records, indent=2, ensure_ascii=False, default=str),
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": task},
    ]
