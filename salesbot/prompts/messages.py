"""
Customer-facing message templates.

Brand name, persona, payment details and review link are injected from
configuration. Templates that depend on per-customer data are exposed as
small builder functions.
"""

from typing import Optional

from salesbot.config import settings
from salesbot.schemas.customer_schema import (
    Credentials,
    DeviceType,
    PaymentMethod,
    PlanType,
)
from salesbot.tools.plans import format_plan_name

_biz = settings.business

DEVICE_MENU = """📱 Android Phone/Tablet
📺 Smart TV (Samsung, LG, etc.)
🔥 Fire Stick
📦 Android Box"""

CONTENT_MENU = """🇮🇪 English channels (Ireland, UK, USA, CA, etc.)
🌍 Europe
🌎 Worldwide (everything)
🔞 Adult content? (just let me know)"""

GREETING = f"""Hey! 👋 Thanks for reaching out to {_biz.name}.

I can get you set up with a free {_biz.trial_hours}-hour trial right now - full access to everything, no payment needed.

Quick question: What device will you be using?
{DEVICE_MENU}

Just let me know and I'll send the setup instructions!"""

DEVICE_QUESTION = f"""No problem! What device are you using exactly?

{DEVICE_MENU}
💻 Other

Just let me know!"""

SETUP_INSTRUCTIONS: dict[DeviceType, str] = {
    DeviceType.FIRESTICK: """Perfect! Fire Stick is super easy. Here's what to do:

Step 1: On your Fire Stick home screen, search for "Downloader" and install it (orange icon)
Step 2: Open Downloader, allow permissions, type 834339 in the URL box and click Go
Step 3: Install IBO Pro Player, click Done, then Delete to remove the installer
Step 4: Open IBO Pro Player. You'll see your MAC Address and Device Key

📸 Send me a screenshot of that screen (or just type the MAC address and Device Key)""",
    DeviceType.ANDROID_PHONE: """Great choice! Here's how to get IBO Pro Player:

Step 1: Open Google Play Store, search for "IBO Pro Player" and install it
Step 2: Open IBO Pro Player. You'll see your MAC Address and Device Key

📸 Send me a screenshot of that screen

Can't find IBO Pro Player? Let me know and I'll give you an alternative!""",
    DeviceType.SMART_TV: """Perfect! For Smart TVs:

Step 1: Open your TV's App Store (Samsung Apps, LG Content Store or Google Play)
Step 2: Search for "IBO Pro Player" or "IB Player" and install it
Step 3: Open it. You'll see your MAC Address and Device Key

📸 Send me a screenshot of that screen (or just type the MAC and Device Key)

Can't find it? Try "Bob Player" (blue logo) instead!""",
    DeviceType.ANDROID_BOX: """Nice! Android Box setup is easy:

Step 1: Open Google Play Store on your box, search for "IBO Pro Player" and install it
(or use the Downloader app with code 481220)
Step 2: Open IBO Pro Player. You'll see your MAC Address and Device Key

📸 Send me a screenshot of that screen""",
    DeviceType.OTHER: """No problem! Most devices work with IBO Pro Player:

Step 1: Open your device's app store and search for "IBO Pro Player" (or "Bob Player" / "IB Player")
Step 2: Install and open it. You'll see your MAC Address and Device Key

📸 Send me a screenshot of that screen (or just type the MAC and Device Key)""",
}

TIVIMATE_CONTENT_QUESTION = f"""Ah, you've got TiviMate! Great choice 👍

I'll send you the login details (Username, Password, URL) instead.

Which content do you want?
{CONTENT_MENU}"""

CONTENT_PREF_QUESTION = f"""Perfect! Got your device details ✅

One last thing before I activate your trial:
What content are you most interested in?
{CONTENT_MENU}

This helps me set up exactly what you want to test!"""

MAC_HELP = """No worries! Having trouble finding the MAC address?

Open IBO Pro Player - you should see a screen with:
- MAC Address
- Device Key

Just send me a screenshot of that screen, or type the numbers you see.

Need help with any step? I'm here! 👍"""

TRIAL_PENDING = """Perfect! I'm setting up your trial now...

You'll be watching in about 2 minutes! I'll message you as soon as it's ready 👍"""

_PRICING_BASE = """🔥 BUY 2, GET 1 FREE deal active!

Lifetime: €250 (Best seller!)
- 6 years GUARANTEED
- Pay €150 now + €100 next month

2 Years: €139 + 4 FREE months
Yearly: €80 + 2 FREE months
Monthly: €35 - No commitment

✅ 90-day money-back guarantee"""

LIFETIME_UPSELL = """I'd recommend Lifetime though - it's our best seller. €250 for 6+ years vs €80/year... you'd save hundreds!

And you can split the payment: €150 now, €100 next month.

Which one works for you?"""

PAYMENT_INSTRUCTIONS: dict[PaymentMethod, str] = {
    PaymentMethod.REVOLUT: f"""For Revolut/Bank transfer:

Name: {_biz.bank_account_name}
IBAN: {_biz.bank_iban}
BIC: {_biz.bank_bic}

Send me the payment receipt here once done ✅""",
    PaymentMethod.PAYPAL: f"""For PayPal:

Send to: {_biz.paypal_address}

Let me know once that's sent and share the receipt ✅""",
}

PAYMENT_BOTH = f"""Which payment method works best for you?

Revolut/Bank Transfer:
Name: {_biz.bank_account_name}
IBAN: {_biz.bank_iban}

PayPal:
Send to {_biz.paypal_address}

Send me the receipt here once done ✅"""

PAYMENT_RECEIVED_ACK = """Got it! Let me verify the payment...

Can you send me a screenshot of the payment receipt please? ✅"""

PAYMENT_PENDING_HOLD = "Thanks! I'm just verifying the payment now - will confirm in a moment 👍"

TECHNICAL_ISSUE = """On it! Let me check what's happening.

Quick questions:
1. Which channel/content is having issues?
2. What device are you using?
3. Is your internet working okay for other things?

I'll get this sorted for you right away 👍"""

ESCALATION = "I'm getting one of our team members to help you right away. They'll message you shortly! 👍"

GENERATION_FAILURE = "Sorry, I'm having a technical issue right now. Let me get someone to help you! 👍"

VISION_CONFIRM = """I found these details in your screenshot:

{details}

Is that correct? Just reply yes or no 👍"""

FOLLOW_UP_TEMPLATES: dict[str, str] = {
    "trial_18h": """Hey! Hope you're enjoying the trial so far 👍

Just checking in - everything working smoothly? Finding all the channels you want?

Your trial expires in about 6 hours, so if you want to keep access, let me know!""",
    "trial_23h": """Quick heads up! ⏰

Your trial expires in about 1 hour.

If you want to keep watching, I can get you set up right now - takes 2 minutes.

🔥 BUY 2, GET 1 FREE
Lifetime: €250 - pay €150 now, €100 next month
2 Years: €139 + 4 Free Months
Yearly: €80 + 2 Free Months

Which plan works for you?""",
    "trial_expired": f"""Hey! Your {_biz.trial_hours}-hour trial just expired.

Hope you got to test everything out!

Want to keep access? I can reactivate you in 2 minutes.

Lifetime: €250 (6 years guaranteed)
Yearly: €80 + 2 Free Months
2 Years: €139 + 4 Free Months

Which plan works for you?""",
    "day1_followup": """Hey! Just following up from yesterday.

I know you might be thinking it over - totally fair.

Quick question: What's holding you back?
💰 Price?
🤔 Not sure it's reliable?
📺 Missing channels you wanted?
⚙️ Technical issues during trial?

Let me know - I can probably help!""",
    "day3_followup": f"""Quick question - did you end up going with another provider?

Just want to make sure you didn't have issues with the trial that we could've fixed!

If you're still interested, I can give you another {_biz.trial_hours}-hour trial to test anything you missed.""",
    "day7_final": f"""Last message from me - don't want to be a pest! 😅

If you ever want to give {_biz.name} another shot, we're here.

Questions or concerns, I'm always here. Take care! 🍀""",
    "ghoster_4h": """Hey! Still interested in the free trial?

I sent the setup instructions earlier but didn't hear back - just want to make sure you got them!

Need help with any of the steps? I can walk you through it 👍""",
    "ghoster_nextday": """Hey! Just checking in.

Did you run into any issues with the setup?

A lot of people get stuck on finding the app - happy to help if that's the case!

Or if now's not a good time, no worries - just let me know when you want to try it 👍""",
    "review_request_day3": f"""Hey! Hope you're enjoying your {{plan}} 👍

Quick reminder: if you've got 30 seconds, a review would be amazing!

{_biz.review_url}

Thanks! 🍀""",
    "payment_reminder": """Hey! Hope you're doing great.

Just a quick heads-up that today is the scheduled day for your {plan} payment.

If you could get that processed whenever you're free, I'd appreciate it!""",
}


def setup_instructions(device: Optional[DeviceType]) -> str:
    """Device-specific install steps; no device yet means asking for one."""
    if device == DeviceType.TIVIMATE:
        return TIVIMATE_CONTENT_QUESTION
    return SETUP_INSTRUCTIONS.get(device, DEVICE_QUESTION)


def pricing_message(current_interest: Optional[PlanType] = None) -> str:
    if current_interest == PlanType.YEARLY:
        return f"{_PRICING_BASE}\n\n{LIFETIME_UPSELL}"
    return f"{_PRICING_BASE}\n\nWhich plan interests you?"


def payment_options(plan: Optional[PlanType] = None) -> str:
    chosen = f" on the {format_plan_name(plan)}" if plan else ""
    return (
        f"Great choice{chosen}! 🎉\n\n"
        "Which payment method works best for you?\n"
        "💳 Revolut/Bank Transfer\n"
        "📱 PayPal\n\n"
        "Let me know and I'll send the details!"
    )


def payment_instructions(method: Optional[PaymentMethod] = None) -> str:
    if method is None:
        return PAYMENT_BOTH
    return PAYMENT_INSTRUCTIONS.get(method, PAYMENT_BOTH)


def render_followup_template(followup_type: str, plan: Optional[PlanType] = None) -> Optional[str]:
    """Resolve a follow-up template, filling ``{plan}``. None for unknown types."""
    template = FOLLOW_UP_TEMPLATES.get(followup_type)
    if template is None:
        return None
    plan_name = format_plan_name(plan) if plan else "subscription"
    return template.replace("{plan}", plan_name)


def trial_activation_message(credentials: Credentials, device: Optional[DeviceType]) -> str:
    if device == DeviceType.TIVIMATE:
        return (
            "🎉 Your trial is live!\n\n"
            "Here are your login details for TiviMate:\n"
            f"Username: {credentials.username}\n"
            f"Password: {credentials.password}\n"
            f"URL: {credentials.url}\n\n"
            "Open TiviMate, go to Settings → Add Playlist → Xtream Codes Login, "
            "and enter these details.\n\n"
            f"Your {_biz.trial_hours}-hour trial started now - let me know if you need anything!"
        )
    return (
        "🎉 Your trial is live!\n\n"
        "Here's what to do:\n"
        "1️⃣ Exit the IBO Pro Player app completely\n"
        "2️⃣ Reopen the app\n"
        "3️⃣ Click \"Continue\" when it loads\n"
        "4️⃣ Give it 10-15 seconds to load all the channels\n\n"
        "Try a few channels and let me know if you see any issues. 🍿📺\n\n"
        f"Your {_biz.trial_hours}-hour trial started now."
    )


def subscription_welcome_message(plan: PlanType, credentials: Credentials) -> str:
    return (
        f"🎉 Welcome to {_biz.name}!\n\n"
        f"Your {format_plan_name(plan)} is now active ✅\n\n"
        "Save these details:\n"
        f"M3u: {credentials.stream_url or ''}\n"
        f"Username: {credentials.username}\n"
        f"Password: {credentials.password}\n"
        f"URL: {credentials.url}\n\n"
        "If anything changes or stops working, message me immediately!\n\n"
        "Quick favor: Would you mind leaving us a quick review?\n"
        f"{_biz.review_url}\n\n"
        "Thanks mate! Enjoy unlimited streaming 🍿📺"
    )


def vision_confirmation(mac_address: Optional[str], device_key: Optional[str]) -> str:
    lines = []
    if mac_address:
        lines.append(f"MAC Address: {mac_address}")
    if device_key:
        lines.append(f"Device Key: {device_key}")
    return VISION_CONFIRM.format(details="\n".join(lines))
