from __future__ import annotations

RANDOM_STATE = 42
TRAIN_FRACTION = 0.8

CV_FOLDS = 10
CV_REPEATS = 5

# ccp_alpha candidates, strongest pruning first: on equal CV score the
# earlier (simpler) tree is kept
CCP_ALPHAS = (0.05, 0.02, 0.01, 0.005, 0.0025, 0.001, 0.0)

CRITERION = "gini"

# SMOTE as in DMwR: perc.over / perc.under in percent
SMOTE_PERC_OVER = 200
SMOTE_PERC_UNDER = 200
SMOTE_K_NEIGHBORS = 5

COST_HEAVY = 4.0
COST_LIGHT = 1.0

STRATEGY_ORIGINAL = "Original"
STRATEGY_KAPPA = "Kappa"
STRATEGY_WEIGHTED = "Weighted"
STRATEGY_COST_FN = "Cost FN"
STRATEGY_COST_FP = "Cost FP"
STRATEGY_DOWN = "Down"
STRATEGY_SMOTE = "SMOTE"
STRATEGY_ALL = "All"

REPORT_TXT = "classification_report.txt"
CONFUSION_MATRIX_CSV = "confusion_matrix.csv"
TREE_TXT = "tree.txt"
MODEL_JOBLIB = "model.joblib"
METRICS_CSV = "metrics_summary.csv"
CV_SUMMARY_CSV = "cv_summary.csv"
