"""
Constants and system prompts for the OnlineCare Chat Relay application.
"""

SYSTEM_PROMPT = (
    "You are OnlineCareAI, a helpful healthcare assistant. Provide accurate, helpful, "
    "and caring responses about health and medical topics. Always recommend consulting "
    "healthcare professionals for serious medical concerns."
)

DEFAULT_EMPTY_COMPLETION = "Sorry, I could not generate a response."

SSE_DONE_TOKEN = "[DONE]"


class Role:
    """Chat message roles accepted by the inference server."""
    SYSTEM, USER, ASSISTANT = "system", "user", "assistant"

    ALL = frozenset({SYSTEM, USER, ASSISTANT})


# Locally synthesized replies used when the inference server is unavailable.
FEVER_RESPONSE = (
    "I'm sorry you're not feeling well. A fever is usually your body's way of fighting an infection. "
    "Rest, drink plenty of fluids, and monitor your temperature regularly. Over-the-counter medicines "
    "such as paracetamol can help bring it down if used as directed. Please contact a healthcare "
    "professional if your temperature goes above 39.4°C (103°F), lasts more than three days, or comes "
    "with a stiff neck, confusion, a rash, or difficulty breathing."
)

HEADACHE_RESPONSE = (
    "Headaches are very common and are often linked to stress, dehydration, lack of sleep, or eye strain. "
    "Try resting in a quiet, dark room, drinking water, and taking a break from screens. If your headache "
    "is sudden and severe, follows a head injury, or comes with vision changes, weakness, or a stiff neck, "
    "please seek medical care right away."
)

RESPIRATORY_RESPONSE = (
    "Coughs, sore throats, and colds are usually caused by viral infections and tend to improve within a "
    "week or two. Rest, warm fluids, and honey for soothing the throat can help. Please see a healthcare "
    "professional if you have trouble breathing, chest pain, a high fever, or symptoms that keep getting worse."
)

DIGESTIVE_RESPONSE = (
    "Stomach upset, nausea, or diarrhea are often short-lived. Sip water or oral rehydration solution in "
    "small amounts, and try bland foods once you feel able to eat. Contact a healthcare professional if you "
    "notice blood, signs of dehydration, severe abdominal pain, or symptoms lasting more than two days."
)

GENERAL_SYMPTOM_RESPONSE = (
    "Thank you for describing how you feel. I can share general health information, but I can't examine "
    "you or make a diagnosis. Keep track of when your symptoms started and how they change, and please "
    "consult a healthcare professional for a proper assessment, especially if symptoms are severe or worsening."
)

GENERIC_RESPONSE = (
    "Hello, I'm OnlineCareAI. I'm having trouble reaching my medical knowledge service right now, but I'm "
    "still here to help. Could you tell me a bit more about your question? For anything urgent, please "
    "contact a healthcare professional or your local emergency number."
)

# Ordered: first matching keyword group wins.
FALLBACK_RESPONSES = [
    (("fever", "feverish", "high temperature", "chills"), FEVER_RESPONSE),
    (("headache", "headaches", "migraine"), HEADACHE_RESPONSE),
    (("cough", "coughing", "sore throat", "cold", "flu", "runny nose"), RESPIRATORY_RESPONSE),
    (("stomach", "nausea", "nauseous", "vomit", "vomiting", "diarrhea"), DIGESTIVE_RESPONSE),
    (("symptom", "symptoms", "pain", "ache", "hurts", "sick", "dizzy", "rash"), GENERAL_SYMPTOM_RESPONSE),
]


class Patterns:
    """Regular expression patterns for reasoning/answer segmentation."""

    THINK_BLOCK = r'<think>(.*?)</think>'

    THINKING_START = (
        r'^(thinking\b|let me think\b|let me\b|first,|okay,? so\b|hmm+\b|i need to\b|i should\b|'
        r'the\b|this\b|since\b|because\b|however\b|actually\b)'
    )

    ANSWER_START = (
        r'^(answer\b|final answer\b|here\'s\b|here is\b|in summary\b|to summarize\b|'
        r'hello\b|hi\b|hey\b|greetings\b|dear\b|good (morning|afternoon|evening)\b)'
    )

    REASONING_VERBS = (
        r'\b(think|thinking|consider|considering|wonder|figure|recall|reason|reasoning|'
        r'analy[sz]e|assume|suppose|maybe|perhaps|need to|should i|let me|user)\b'
    )

    TERMINAL_PUNCTUATION = ('.', '!', '?')
