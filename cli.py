import argparse
import json
import logging
import sys

from config import COLUMN_PRESETS, DATA_PATH, DEFAULT_BATCH_SIZE, DEFAULT_EPOCHS, DEFAULT_WINDOW_LENGTH, UNSET_DEPTH, columns_for_depths
from dataset_iterator import IrrigationDatasetIterator
from errors import IrrigationDataError


logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

def cmd_generate(args):
    """Write a synthetic history CSV."""
    from seed import seed
    cols = seed(args.out, args.days, sensors=args.sensors, random_state=args.seed)
    print(f"Wrote {args.days} days ({cols} columns) to {args.out}")

def cmd_inspect(args):
    """Print row count, window and batch figures for a history CSV."""
    with IrrigationDatasetIterator(args.path, columns=args.columns, batch_size=args.batch_size,
                                   window_length=args.window_length) as it:
        print(json.dumps(it.describe(), indent=2))

def cmd_train(args):
    """Train the LSTM and print its evaluation stats."""
    from recommender import train_model
    _, stats = train_model(args.path, args.columns, window_length=args.window_length,
                           batch_size=args.batch_size, epochs=args.epochs)
    print(json.dumps(stats, indent=2))

def cmd_recommend(args):
    """Train on the history file, then write tomorrow's recommendation report."""
    from recommender import generate_recommendation, train_model
    columns = columns_for_depths(args.depth1, args.depth2, args.depth3)
    model, stats = train_model(args.path, columns, window_length=args.window_length,
                               batch_size=args.batch_size, epochs=args.epochs)
    report, results = generate_recommendation(
        model, args.path, args.crop, args.soil, args.depth1, args.depth2, args.depth3,
        window_length=stats["window_length"], report_dir=args.report_dir,
    )
    if report is None:
        print("Report could not be written.")
        return 1
    print(f"Recommendation report written to {report}")
    print(f"Irrigation: {results + ' inches' if results else 'none recommended'}")

def build_parser():
    parser = argparse.ArgumentParser(description="Irrigation recommendation tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    gen = subparsers.add_parser("generate", help="Write a synthetic history CSV")
    gen.add_argument("--days", type=int, default=365)
    gen.add_argument("--sensors", type=int, choices=sorted(COLUMN_PRESETS), default=1)
    gen.add_argument("--out", default=DATA_PATH)
    gen.add_argument("--seed", type=int, default=None)
    gen.set_defaults(func=cmd_generate)

    def add_iter_args(p, columns=True):
        p.add_argument("path", nargs="?", default=DATA_PATH, help="history CSV (default: %(default)s)")
        if columns:
            p.add_argument("--columns", type=int, default=COLUMN_PRESETS[1])
        p.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
        p.add_argument("--window-length", type=int, default=DEFAULT_WINDOW_LENGTH)

    insp = subparsers.add_parser("inspect", help="Show how a history CSV will be batched")
    add_iter_args(insp)
    insp.set_defaults(func=cmd_inspect)

    tr = subparsers.add_parser("train", help="Train the model and print its stats")
    add_iter_args(tr)
    tr.add_argument("--epochs", type=int, default=DEFAULT_EPOCHS)
    tr.set_defaults(func=cmd_train)

    rec = subparsers.add_parser("recommend", help="Train and write a recommendation report")
    add_iter_args(rec, columns=False)
    rec.add_argument("--epochs", type=int, default=DEFAULT_EPOCHS)
    rec.add_argument("--crop", required=True)
    rec.add_argument("--soil", required=True)
    rec.add_argument("--depth1", type=float, required=True, help="sensor 1 depth (in.)")
    rec.add_argument("--depth2", type=float, default=UNSET_DEPTH)
    rec.add_argument("--depth3", type=float, default=UNSET_DEPTH)
    rec.add_argument("--report-dir", default=None)
    rec.set_defaults(func=cmd_recommend)
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        return args.func(args) or 0
    except IrrigationDataError as e:
        logging.error(str(e))
        return 2

if __name__ == "__main__":
    sys.exit(main())  # python cli.py <command>
