from __future__ import annotations

ENCODING_UTF8_SIG = "utf-8-sig"

LABEL_COL = "Attrition"
LABEL_YES = "Yes"
LABEL_NO = "No"
LABELS = (LABEL_YES, LABEL_NO)

# Identifier, carries no signal
ID_COLUMNS = ("EmployeeNumber",)

# Constant in the IBM HR attrition data; dropped together with any other
# single-valued column found at load time
CONSTANT_COLUMNS = ("EmployeeCount", "Over18", "StandardHours")

LABEL_ALIASES = {
    "yes": LABEL_YES,
    "y": LABEL_YES,
    "1": LABEL_YES,
    "1.0": LABEL_YES,
    "true": LABEL_YES,
    "no": LABEL_NO,
    "n": LABEL_NO,
    "0": LABEL_NO,
    "0.0": LABEL_NO,
    "false": LABEL_NO,
}
