"""
Tool Catalog.

Static, declarative list of the tools the customer-service agent may call.
The same immutable tuple is offered on every channel; handlers are bound to
these names by the ToolRegistry.
"""

from __future__ import annotations

from typing import Optional

from ..domain.entities import ToolSpec

# Tool names
GET_ORDER_STATUS = "get_order_status"
GET_QUOTE_INFO = "get_quote_info"
GET_INVOICE_INFO = "get_invoice_info"
GET_CUSTOMER_ACCOUNT_INFO = "get_customer_account_info"
GET_ORDER_DETAILS = "get_order_details"
GET_DELIVERY_INFO = "get_delivery_info"
ESCALATE_TO_HUMAN = "escalate_to_human"
SEARCH_KNOWLEDGE_BASE = "search_knowledge_base"

INVOICE_PREFIX = "INV-"
QUOTE_PREFIX = "QUOTE-"

_INVOICE_NUMBER_PARAM = {
    "type": "string",
    "description": 'The invoice number for the order (e.g., "INV-Q553-HFKTH" or "Q553-HFKTH")',
}


AGENT_TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name=GET_ORDER_STATUS,
        description=(
            "Get the status of an order by invoice number. The invoice number can be "
            'in formats like "INV-Q553-HFKTH" or just "Q553-HFKTH". Ask the customer '
            "for their invoice number if they have not provided one."
        ),
        parameters={"invoice_number": _INVOICE_NUMBER_PARAM},
        required_params=("invoice_number",),
        prefixed_params=(("invoice_number", INVOICE_PREFIX),),
    ),
    ToolSpec(
        name=GET_QUOTE_INFO,
        description=(
            "Get quote information (items, quantities, descriptions, total, customer "
            "details and the quote PDF). Call this whenever the customer asks about "
            "their quote: to send or resend the quote, or to answer questions about "
            'its contents. If the customer says "my quote" without a quote number, '
            "call this tool with no arguments; the customer's contact details are "
            "filled in automatically. Always call this tool rather than relying on memory."
        ),
        parameters={
            "quote_number": {
                "type": "string",
                "description": (
                    'The quote number provided by the customer (e.g., "Q553-HFKTH"). '
                    "Leave empty if the customer did not give one."
                ),
            },
            "customer_contact": {
                "type": "string",
                "description": (
                    "Customer phone number or email. Optional; taken from the "
                    "conversation when omitted."
                ),
            },
        },
        identity_param="customer_contact",
        delivers_document=True,
        prefixed_params=(("quote_number", QUOTE_PREFIX),),
    ),
    ToolSpec(
        name=GET_INVOICE_INFO,
        description=(
            "Get invoice information (items, quantities, descriptions, total, customer "
            "details and the invoice PDF). If the customer provides an invoice number "
            "in any format, call this tool immediately with it. If they ask about "
            '"my invoice" without a number, call it with no arguments; the customer\'s '
            "contact details are filled in automatically. Do not claim an invoice "
            "cannot be found without calling this tool first."
        ),
        parameters={
            "invoice_number": {
                "type": "string",
                "description": (
                    'The invoice number provided by the customer (e.g., "INV-Q553-HFKTH" '
                    'or "Q553-HFKTH"). Leave empty if the customer did not give one.'
                ),
            },
            "customer_contact": {
                "type": "string",
                "description": (
                    "Customer phone number or email. Optional; taken from the "
                    "conversation when omitted."
                ),
            },
        },
        identity_param="customer_contact",
        delivers_document=True,
        prefixed_params=(("invoice_number", INVOICE_PREFIX),),
    ),
    ToolSpec(
        name=GET_CUSTOMER_ACCOUNT_INFO,
        description=(
            "Get customer account information: orders, quotes, order history, total "
            "order value and last order date. Always make a fresh lookup when the "
            "customer asks about their account. Customers can be identified by phone "
            "number, email, name, quote number or invoice number; with no identifier "
            "the contact details from the conversation are used."
        ),
        parameters={
            "identifier": {
                "type": "string",
                "description": (
                    "Phone number, email, name, quote number or invoice number. "
                    "Optional; taken from the conversation when omitted."
                ),
            },
        },
        identity_param="identifier",
    ),
    ToolSpec(
        name=GET_ORDER_DETAILS,
        description=(
            "Get the items in an order by invoice number: products, descriptions, "
            "quantities, colours, sizes and prices. Ask the customer for their "
            "invoice number if they have not provided one."
        ),
        parameters={"invoice_number": _INVOICE_NUMBER_PARAM},
        required_params=("invoice_number",),
        prefixed_params=(("invoice_number", INVOICE_PREFIX),),
    ),
    ToolSpec(
        name=GET_DELIVERY_INFO,
        description=(
            "Get delivery information for an order by invoice number: whether it is "
            "delivered or collected, the delivery address and customer details. Ask "
            "the customer for their invoice number if they have not provided one."
        ),
        parameters={"invoice_number": _INVOICE_NUMBER_PARAM},
        required_params=("invoice_number",),
        prefixed_params=(("invoice_number", INVOICE_PREFIX),),
    ),
    ToolSpec(
        name=ESCALATE_TO_HUMAN,
        description=(
            "Escalate the conversation to a human staff member. Use this when the "
            "customer asks to speak to a person, when the request is outside your "
            "capabilities, or when the customer is frustrated. Staff are notified with "
            "the conversation context. Afterwards tell the customer that a team member "
            "will be in touch shortly."
        ),
        parameters={
            "reason": {
                "type": "string",
                "description": 'Reason for escalation (e.g., "Customer requested to speak with human")',
            },
            "conversation_summary": {
                "type": "string",
                "description": "Brief summary of the conversation and what the customer needs",
            },
        },
        required_params=("reason",),
    ),
    ToolSpec(
        name=SEARCH_KNOWLEDGE_BASE,
        description=(
            "Search the company knowledge base. Call this before answering any "
            "question about the company: contact details, policies (refunds, terms, "
            "privacy), shipping, payment methods or products. The knowledge base is "
            "the authoritative source."
        ),
        parameters={
            "query": {
                "type": "string",
                "description": "The customer's question or a close paraphrase",
            },
            "top_k": {
                "type": "integer",
                "description": "Number of chunks to return (default 5, max 50)",
            },
            "doc_type": {
                "type": "string",
                "description": 'Optional document type filter (e.g., "refund_policy", "general_info")',
            },
        },
        required_params=("query",),
    ),
)

_TOOLS_BY_NAME: dict[str, ToolSpec] = {tool.name: tool for tool in AGENT_TOOLS}


def get_agent_tools() -> tuple[ToolSpec, ...]:
    """Return the tool catalog.

    Pure accessor: the same immutable tuple is returned for every channel.
    """
    return AGENT_TOOLS


def get_tool_spec(name: str) -> Optional[ToolSpec]:
    """Find a tool spec by exact name."""
    return _TOOLS_BY_NAME.get(name)
