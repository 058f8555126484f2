BROAD_SPLIT_TEMPLATE = "Would you prefer products with {left} or {right}?"
"Split-analysis phrasing for the first questions of a session (depth <= 2)."

NARROWED_SPLIT_TEMPLATE = (
    "Within your narrowed preferences, would you prefer {left} or {right}?"
)
"Split-analysis phrasing once the customer has answered several questions."

NEUTRAL_SPLIT_TEMPLATE = "Would you prefer {left} or {right}?"
"Split-analysis phrasing between the broad and narrowed stages."


TYPE_TEMPLATES = {
    "price": "Would you prefer {left} or {right}?",
    "rating": "Do you prioritize {right} or are you open to {left}?",
    "duration": "Do you value {left} or are you willing to accept {right}?",
    "count": "Would you prefer products with {right} or {left}?",
}
"Templates keyed by the semantic type of the most important attribute."


SINGLE_ATTRIBUTE_TEMPLATES = (
    "Would you prefer products with {left} or {right}?",
    "What matters more to you: {left} or {right}?",
    "Which do you value more: {left} or {right}?",
)
"Rotated for splits dominated by one attribute."

MULTI_ATTRIBUTE_TEMPLATES = (
    "Would you prefer products with {left} or {right}?",
    "What matters more to you: {left} or {right}?",
    "If you had to choose, would you rather have {left} or {right}?",
)
"Rotated for splits over several attributes when no profiles are available."

DOMINANT_ATTRIBUTE_TEMPLATE = "Would you prefer {left} or {right}?"
"Multi-attribute split where one attribute carries most of the weight."

TRADEOFF_TEMPLATE = (
    "Would you prefer {left} (even if it means {right}) "
    "or {right} (even if it means {left})?"
)
"Multi-attribute split with no dominant attribute: spell out the tradeoff."


FEATURE_IMPORTANCE_TEMPLATE = "How important are these features to you: {features}?"
"Last resort when neither branch can be described."


ATTRIBUTE_COMPARISON_TEMPLATES = (
    "What matters more: {a} or {b}?",
    "Would you prefer {a} or {b}?",
    "Which is more important: {a} or {b}?",
)
"Direct comparison of two attributes, independent of any tree node."
