"""Train the leaky network on MNIST and report test accuracy.

    python train.py train --source mnist --epochs 10 --batch-size 100 --lr 1.0
    python train.py train --source bmp --data-dir res
    python train.py export --out res
"""
import argparse
import logging
import sys

import bitmap
import mlp
import mnist_data

EPOCHS = 10
MINIBATCH_SIZE = 100
LEARNING_RATE = 1.0


def load_splits(args):
    if args.source == "bmp":
        train = mnist_data.load_bitmaps(args.data_dir, 0, args.train_count)
        test = mnist_data.load_bitmaps(args.data_dir, args.train_count, args.test_count)
    elif args.source == "csv":
        images, labels = mnist_data.load_csv(args.csv)
        end = args.train_count + args.test_count
        train = images[:args.train_count], labels[:args.train_count]
        test = images[args.train_count:end], labels[args.train_count:end]
    else:
        train = mnist_data.load_mnist("train", args.train_count)
        test = mnist_data.load_mnist("test", args.test_count)
    return train, test


def plot_history(history, path):
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(6, 3))
    ax.plot(range(1, len(history) + 1), history, marker="o")
    ax.set_xlabel("Epoch")
    ax.set_ylabel("Total cost")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def run_train(args):
    (X_train, Y_train), (X_test, Y_test) = load_splits(args)
    print(f"Data loaded — train: {X_train.shape}, test: {X_test.shape}")

    params = mlp.Parameters.initialize(X_train.shape[1], args.hidden, Y_train.shape[1], seed=args.seed)

    print(f"Training ({args.epochs} epochs, batch={args.batch_size}, lr={args.lr})...")
    history = mlp.gradient_descent(params, X_train, Y_train, args.epochs, args.batch_size, args.lr)

    test_acc = mlp.evaluate(params, X_test, Y_test)
    print(f"Test accuracy: {test_acc:.2f}%")

    if args.plot:
        plot_history(history, args.plot)
        print(f"Cost curve saved to {args.plot}")
    return test_acc


def run_export(args):
    mnist_data.export_mnist(args.out, args.train_count, args.test_count)
    print(f"Wrote {args.train_count + args.test_count} bitmaps to {args.out}")


def build_parser():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("train", help="train and evaluate")
    p.add_argument("--source", choices=["mnist", "csv", "bmp"], default="mnist")
    p.add_argument("--data-dir", default="res", help="bitmap directory for --source bmp")
    p.add_argument("--csv", default="train.csv", help="CSV file for --source csv")
    p.add_argument("--train-count", type=int, default=mnist_data.N_TRAIN)
    p.add_argument("--test-count", type=int, default=mnist_data.N_TEST)
    p.add_argument("--hidden", type=int, default=mlp.N_HIDDEN)
    p.add_argument("--epochs", type=int, default=EPOCHS)
    p.add_argument("--batch-size", type=int, default=MINIBATCH_SIZE)
    p.add_argument("--lr", type=float, default=LEARNING_RATE)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--plot", default=None, help="save the per-epoch cost curve to this file")
    p.set_defaults(func=run_train)

    p = sub.add_parser("export", help="write MNIST as a numbered bitmap directory")
    p.add_argument("--out", default="res")
    p.add_argument("--train-count", type=int, default=mnist_data.N_TRAIN)
    p.add_argument("--test-count", type=int, default=mnist_data.N_TEST)
    p.set_defaults(func=run_export)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        args.func(args)
    except (mlp.MLPError, bitmap.BitmapError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
