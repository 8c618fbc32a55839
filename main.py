from __future__ import annotations

"""
CLI entrypoint for the two analyses. Pick the dataset via --dataset:
credit (binary logistic / ridge / lasso) or genes (multinomial ridge / lasso).
"""

import argparse
from pathlib import Path

from pydantic import ValidationError

from glm_reports import PipelineConfig
from glm_reports.pipelines import run_credit_pipeline, run_genes_pipeline


BINARY_FIELDS = (("accuracy", "Acc"), ("precision", "Prec"), ("recall", "Rec"), ("f1", "F1"), ("roc_auc", "AUC"))


def print_metrics(label: str, metrics: dict):
    """One line of binary scores, then the 2x2 confusion matrix."""
    scores = " | ".join(f"{short} {metrics[key]:.3f}" for key, short in BINARY_FIELDS)
    print(f"[{label}] n={metrics['n']} | {scores}")
    (tn, fp), (fn, tp) = metrics["confusion_matrix"].tolist()
    print(f"    TN {tn}  FP {fp}  FN {fn}  TP {tp}")



def print_multinomial(label: str, metrics: dict):
    print(f"[{label}] Acc {metrics['accuracy']:.3f} on {metrics['n']} samples")
    print(metrics["confusion_matrix"].to_string())


def print_cv(cv):
    s = cv.summary()
    print(
        f"{s['family']} CV ({s['measure']}): lambda.min {s['lambda_min']:.5g} "
        f"(cvm {s['cvm_min']:.4f}, {s['nzero_min']} non-zero) | "
        f"lambda.1se {s['lambda_1se']:.5g} (cvm {s['cvm_1se']:.4f}, {s['nzero_1se']} non-zero)"
    )
    if cv.excluded:
        print(f"    Excluded {s['excluded']} of {s['candidates']} strengths:")
        for lam, reason in cv.excluded.items():
            print(f"      {lam:.5g}: {reason}")
    for msg in cv.warnings:
        print(f"    Warning: {msg}")


def describe_dropped(dropped: dict):
    for kind, cols in dropped.items():
        if cols:
            shown = ", ".join(map(str, cols[:10]))
            more = f" (+{len(cols) - 10} more)" if len(cols) > 10 else ""
            print(f"Dropped {len(cols)} {kind.replace('_', '-')} columns: {shown}{more}")


def build_arg_parser():
    """CLI parser with knobs for splits, CV and the dataset choice."""
    parser = argparse.ArgumentParser(
        description="Fit penalized logistic models and report their performance."
    )
    parser.add_argument("--dataset", choices=["credit", "genes"], default="credit")
    parser.add_argument("--csv-path", type=Path, default=Path("data/german.data"))
    parser.add_argument("--data-path", type=Path, default=Path("data/data.csv"))
    parser.add_argument("--labels-path", type=Path, default=Path("data/labels.csv"))
    parser.add_argument("--seed", type=int, help="Seed for the partition and CV folds.")
    parser.add_argument("--train-fraction", type=float)
    parser.add_argument("--variance-threshold", type=float)
    parser.add_argument("--n-folds", type=int)
    parser.add_argument("--decision-threshold", type=float)
    parser.add_argument(
        "--scaling",
        choices=["train", "all"],
        help="train: standardize with training-row statistics; all: use every row (leaks test data).",
    )
    parser.add_argument("--n-lambda", type=int, help="Number of strengths on the CV path.")
    parser.add_argument("--lambda-min-ratio", type=float)
    parser.add_argument("--cv-measure", choices=["deviance", "class"])
    parser.add_argument("--max-iter", type=int, help="Max solver iterations per fit.")
    parser.add_argument("--tol", type=float)
    parser.add_argument("--n-jobs", type=int, help="Parallel jobs for CV folds.")
    parser.add_argument("--top-k", type=int, help="Top features per class to report.")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    overrides = {
        name: getattr(args, name)
        for name in PipelineConfig.model_fields
        if getattr(args, name, None) is not None
    }
    return PipelineConfig(**overrides)


def run_credit(args: argparse.Namespace, config: PipelineConfig):
    """Credit risk: logistic regression, ridge and lasso on bad-credit probability."""
    result = run_credit_pipeline(args.csv_path, config)

    print(f"Credit rows: {result['num_rows']}, bad rate: {result['positive_rate']:.3f}")
    print(f"Train size: {result['train_size']}, Test size: {result['test_size']}")
    print(f"Features after filtering: {result['feature_count']} (standardized on {result['scaling']} rows)")
    describe_dropped(result["dropped"])

    print_metrics("Majority baseline", result["baseline"])

    logistic = result["logistic"]
    print_metrics("Logistic train", logistic["train"])
    print_metrics("Logistic test", logistic["test"])
    print(f"\nLogistic intercept (raw units): {logistic['intercept']:.4f}")
    print("Coefficients (raw units):")
    print(logistic["coefficients"].to_string())
    top = logistic["top_coefficients"]
    print(f"Largest raising bad-credit odds: {', '.join(top['positive'].index)}")
    print(f"Largest lowering bad-credit odds: {', '.join(top['negative'].index)}")

    for family in ("ridge", "lasso"):
        entry = result[family]
        print()
        print_cv(entry["cv"])
        print_metrics(f"{family} train", entry["train"])
        print_metrics(f"{family} test", entry["test"])
        print(f"Top {config.top_k} non-zero coefficients at lambda.1se:")
        print(entry["relevant_features"].to_string())


def run_genes(args: argparse.Namespace, config: PipelineConfig):
    """Tumour class from gene expression: multinomial ridge and lasso."""
    result = run_genes_pipeline(args.data_path, args.labels_path, config)

    print(f"Samples: {result['num_samples']}, genes: {result['gene_count']}")
    print("Class counts: " + ", ".join(f"{k}={v}" for k, v in result["class_counts"].items()))
    print(f"Train size: {result['train_size']}, Test size: {result['test_size']}")
    print(f"Genes kept after filtering: {result['feature_count']} (standardized on {result['scaling']} rows)")
    describe_dropped(result["dropped"])

    for family in ("ridge", "lasso"):
        entry = result[family]
        print()
        print_cv(entry["cv"])
        print_multinomial(f"{family} train", entry["train"])
        print_multinomial(f"{family} test", entry["test"])

    print(f"\nTop {config.top_k} lasso genes per class at lambda.1se:")
    for label, coefs in result["lasso"]["top_features"].items():
        print(f"  {label}:")
        print(coefs.to_string() if len(coefs) else "    (no non-zero coefficients)")


def main(args: argparse.Namespace | None = None):
    """Dispatch to the selected dataset."""
    parser = build_arg_parser()
    args = args or parser.parse_args()
    try:
        config = config_from_args(args)
    except ValidationError as exc:
        parser.error(str(exc))

    try:
        if args.dataset == "credit":
            run_credit(args, config)
        else:
            run_genes(args, config)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"error: {exc}") from exc


if __name__ == "__main__":
    main()
