ORDER_CONFIRMATION_TEMPLATE = "order_milestones_payment_terms"
RATE_WARNING_TEMPLATE = "auragold_rate_warning"
PROTECTION_LAPSED_TEMPLATE = "auragold_protection_lapsed"

# Templates the dispatcher sends by name; they must exist on the WhatsApp
# business account with the same variable order.
SYSTEM_TEMPLATES = [
    {
        "name": "auragold_order_confirmation",
        "description": "Sent immediately when an order is created. Must include tracking link.",
        "category": "UTILITY",
        "variables": ["customer_name", "order_id", "total_amount", "tracking_token"],
        "content": (
            "Hello {{1}}, thank you for shopping with AuraGold! Your order {{2}} ({{3}}) has been placed. "
            "Track your order here: https://auragold.com/view/{{4}} for details."
        ),
        "examples": ["John Doe", "ORD-12345", "₹50,000", "AbCd123"],
    },
    {
        "name": "auragold_payment_request",
        "description": "Sent when a scheduled payment is due or overdue.",
        "category": "UTILITY",
        "variables": ["customer_name", "amount_due", "due_date", "payment_token"],
        "content": (
            "Dear {{1}}, a gentle reminder that your payment of {{2}} is due by {{3}}. "
            "Please complete the payment securely using this link: https://auragold.com/pay/{{4}} securely."
        ),
        "examples": ["Sarah", "₹12,500", "25 Oct 2023", "XyZ987"],
    },
    {
        "name": "auragold_production_update",
        "description": "Sent when the jewelry status changes (e.g. Designing -> Production).",
        "category": "UTILITY",
        "variables": ["customer_name", "item_category", "new_status", "tracking_token"],
        "content": (
            "Great news {{1}}! Your {{2}} has moved to the {{3}} stage. "
            "See photos and updates here: https://auragold.com/status/{{4}} on portal."
        ),
        "examples": ["Michael", "Diamond Ring", "Quality Check", "LmNoP456"],
    },
    {
        "name": ORDER_CONFIRMATION_TEMPLATE,
        "description": "Detailed order confirmation with 6-milestone breakdown.",
        "category": "UTILITY",
        "variables": [
            "customer", "item", "total", "terms",
            "d1", "a1", "d2", "a2", "d3", "a3", "d4", "a4", "d5", "a5", "d6", "a6",
            "link",
        ],
        "content": (
            "Dear {{1}}, thank you for choosing AuraGold. We are pleased to share the details and payment "
            "schedule for your order of {{2}}.\n\nTotal Order Value: {{3}}\nPayment Terms: {{4}}\n\n"
            "Payment Milestones:\n1. {{5}}: {{6}}\n2. {{7}}: {{8}}\n3. {{9}}: {{10}}\n4. {{11}}: {{12}}\n"
            "5. {{13}}: {{14}}\n6. {{15}}: {{16}}\n\nYou can view the detailed breakdown and track your order "
            "progress here: {{17}}\n\nIt is a privilege to craft this piece for you."
        ),
        "examples": [
            "Rahul", "Gold Chain", "₹1,20,000", "12 Months",
            "10 Jan", "₹10k", "10 Feb", "₹10k", "10 Mar", "₹10k",
            "10 Apr", "₹10k", "10 May", "₹10k", "10 Jun", "₹10k",
            "https://aura.gold/v/123",
        ],
    },
    {
        "name": RATE_WARNING_TEMPLATE,
        "description": "Sent when gold rate crosses limit AND payment is overdue.",
        "category": "UTILITY",
        "variables": ["customer_name", "current_rate", "due_amount", "days_left"],
        "content": (
            "⚠️ URGENT: Dear {{1}}, gold rate (₹{{2}}/g) has crossed your protection limit. "
            "Your payment of ₹{{3}} is overdue. Pay within {{4}} days to retain your booked rate."
        ),
        "examples": ["Rajesh", "7200", "15000", "6"],
    },
    {
        "name": PROTECTION_LAPSED_TEMPLATE,
        "description": "Sent when protection expires due to non-payment.",
        "category": "UTILITY",
        "variables": ["customer_name", "new_total_amount"],
        "content": (
            "❌ ALERT: Dear {{1}}, your Gold Rate Protection has lapsed due to non-payment. "
            "Your new order total is ₹{{2}} as per today's market rate. Please contact us."
        ),
        "examples": ["Rajesh", "1,25,000"],
    },
]

INITIAL_TEMPLATES = [
    {
        "name": "welcome_initiate",
        "content": (
            "Hello {{name}}, welcome to AuraGold! We are excited to assist you with your jewelry journey. "
            "How can we help you today?"
        ),
        "tactic": "EMPATHY",
        "target_profile": "REGULAR",
        "category": "MARKETING",
    },
    {
        "name": "gentle_nudge_vip",
        "content": (
            "Hello {{name}}, we hope you're enjoying your day! Just a small reminder about your upcoming "
            "installment of ₹{{amount}}. We appreciate your consistent trust in AuraGold."
        ),
        "tactic": "EMPATHY",
        "target_profile": "VIP",
        "category": "UTILITY",
    },
    {
        "name": "rate_protection_warning",
        "content": (
            "Dear {{name}}, urgent reminder: Your Gold Rate Protection expires in 24 hours if the payment of "
            "₹{{amount}} isn't cleared. Don't lose your locked-in rate!"
        ),
        "tactic": "LOSS_AVERSION",
        "target_profile": "HIGH_RISK",
        "category": "UTILITY",
    },
]
