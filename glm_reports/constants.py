"""
Fixed literals shared by the credit and gene-expression analyses.
"""

RANDOM_SEED = 1337
TRAIN_FRACTION = 0.75
VARIANCE_THRESHOLD = 0.001
N_FOLDS = 10
DECISION_THRESHOLD = 0.5
TOP_K_FEATURES = 4

# Lambda path, same defaults as glmnet
N_LAMBDA = 30
RIDGE_LAMBDA_MAX_FACTOR = 1000.0
PROB_CLIP = 1e-5

# German credit data (space-delimited, no header row).
# (column name, role) in file order; the last column is the target.
CREDIT_COLUMNS = [
    ("checking_status", "categorical"),
    ("duration", "numeric"),
    ("credit_history", "categorical"),
    ("purpose", "categorical"),
    ("credit_amount", "numeric"),
    ("savings_status", "categorical"),
    ("employment", "categorical"),
    ("installment_rate", "numeric"),
    ("personal_status", "categorical"),
    ("other_parties", "categorical"),
    ("residence_since", "numeric"),
    ("property_magnitude", "categorical"),
    ("age", "numeric"),
    ("other_payment_plans", "categorical"),
    ("housing", "categorical"),
    ("existing_credits", "numeric"),
    ("job", "categorical"),
    ("num_dependents", "numeric"),
    ("own_telephone", "categorical"),
    ("foreign_worker", "categorical"),
    ("credit_class", "categorical"),
]
CREDIT_TARGET = "credit_class"
CREDIT_POSITIVE_CLASS = 2  # 1 = good, 2 = bad

# Gene-expression files: first column of both is an unnamed sample id
SAMPLE_COLUMN = "sample"
LABEL_COLUMN = "Class"
