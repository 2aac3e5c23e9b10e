"""Turn MNIST from disk, CSV or the Hugging Face hub into (images, one-hot labels) matrices."""
import logging
import os

import numpy as np
import pandas as pd

import bitmap
from mlp import N_OUT, LabelError

logger = logging.getLogger(__name__)

N_TRAIN = 10000
N_TEST = 10000


# Convert label values (0-9) into one-hot rows: (m,) -> (m x n_out)
def one_hot(labels, n_out=N_OUT):
    labels = np.asarray(labels).astype(int)
    bad = (labels < 0) | (labels >= n_out)
    if bad.any():
        raise LabelError(f"label {labels[bad][0]} is outside [0, {n_out})")
    oh = np.zeros((labels.size, n_out), dtype=np.float32)
    oh[np.arange(labels.size), labels] = 1
    return oh


def bitmap_path(directory, index):
    return os.path.join(directory, f"{index:05d}.bmp")


# ── Bitmap directory: 00000.bmp, 00001.bmp, ... ───────────────────────────────
def load_bitmaps(directory, start, count, n_out=N_OUT):
    images, labels = [], []
    for i in range(start, start + count):
        bmp = bitmap.read_bitmap(bitmap_path(directory, i))
        images.append(bitmap.to_vector(bmp))
        labels.append(bmp.label)
    logger.info("loaded %d bitmaps from %s (start %d)", count, directory, start)
    if not images:
        return np.zeros((0, 0), dtype=np.float32), np.zeros((0, n_out), dtype=np.float32)
    return np.stack(images), one_hot(labels, n_out)

def export_bitmaps(images, labels, directory, start=0):
    """Write (m, H, W) uint8 images as numbered bitmaps that load_bitmaps reads back."""
    os.makedirs(directory, exist_ok=True)
    for offset, (img, label) in enumerate(zip(images, labels)):
        bitmap.write_bitmap(bitmap_path(directory, start + offset), img, int(label))
    logger.info("wrote %d bitmaps to %s (start %d)", len(images), directory, start)


# ── Hugging Face MNIST ────────────────────────────────────────────────────────
def _mnist_split(split, limit=None):
    from datasets import load_dataset
    ds = load_dataset("mnist", split=split)
    if limit is not None:
        ds = ds.select(range(min(limit, len(ds))))
    imgs = np.array([np.array(img) for img in ds["image"]], dtype=np.uint8)
    return imgs, np.array(ds["label"])

def load_mnist(split, limit=None, n_out=N_OUT):
    imgs, labels = _mnist_split(split, limit)
    logger.info("loaded MNIST %s: %d images", split, len(imgs))
    return imgs.reshape(len(imgs), -1).astype(np.float32) / 255.0, one_hot(labels, n_out)

def export_mnist(directory, n_train=N_TRAIN, n_test=N_TEST):
    """Train images first, then test images, in one numbered sequence."""
    imgs, labels = _mnist_split("train", n_train)
    export_bitmaps(imgs, labels, directory)
    imgs, labels = _mnist_split("test", n_test)
    export_bitmaps(imgs, labels, directory, start=n_train)


# ── Kaggle CSV: label column, then one column per pixel ───────────────────────
def load_csv(path, n_out=N_OUT):
    data = np.array(pd.read_csv(path))
    logger.info("loaded %s: %d rows x %d columns", path, *data.shape)
    return data[:, 1:].astype(np.float32) / 255.0, one_hot(data[:, 0], n_out)
