import numpy as np
import gradio as gr
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from PIL import Image

import mlp
import mnist_data

GALLERY_SIZE = 100
TRAIN_COUNT = 2000
TEST_COUNT = 1000
EPOCHS = 5
MINIBATCH_SIZE = 20
LEARNING_RATE = 1.0


def _to_pil(vec):
    """784-float row → upscaled RGB PIL image for display."""
    arr = (vec.reshape(28, 28) * 255).astype(np.uint8)
    return Image.fromarray(arr).resize((112, 112), Image.NEAREST).convert("RGB")


def describe_prediction(outputs, actual):
    pred = int(np.argmax(outputs))
    verdict = "correct" if pred == actual else "wrong"
    return (f"Predicted: **{pred}** (a2 = {outputs[pred]:.3f})  —  "
            f"Actual: **{actual}**  — {verdict}")


def plot_outputs(outputs, actual):
    """Bar chart of the raw output activations, predicted class highlighted."""
    pred = int(np.argmax(outputs))
    colors = ["crimson" if i == pred else "steelblue" for i in range(len(outputs))]
    fig, ax = plt.subplots(figsize=(6, 3))
    ax.bar(range(len(outputs)), outputs, color=colors)
    ax.axhline(0, color="gray", linewidth=0.8)
    ax.set_xlabel("Digit")
    ax.set_ylabel("Output activation")
    ax.set_title(f"Predicted: {pred}  |  Actual: {actual}  ({'✓' if pred == actual else '✗'})")
    ax.set_xticks(range(len(outputs)))
    ax.grid(True, alpha=0.3, axis="y")
    fig.tight_layout()
    return fig


def build_demo(params, X_test, Y_test, test_acc, seed=0):
    rng = np.random.default_rng(seed)
    gallery_indices = rng.choice(len(X_test), min(GALLERY_SIZE, len(X_test)), replace=False)
    gallery = [(_to_pil(X_test[i]), str(int(np.argmax(Y_test[i])))) for i in gallery_indices]

    def predict_digit(gallery_pos):
        if gallery_pos is None:
            return None, "Select an image from the gallery above."
        idx = gallery_indices[int(gallery_pos)]
        _, layer2 = mlp.feedforward(params, X_test[idx])
        actual = int(np.argmax(Y_test[idx]))
        return plot_outputs(layer2.activation, actual), describe_prediction(layer2.activation, actual)

    with gr.Blocks(title="Leaky Network from Scratch") as demo:
        selected_pos = gr.State(None)   # index into gallery_indices

        gr.Markdown(
            "# Leaky Network from Scratch\n"
            f"A 2-layer network ({params.n_in} → {params.n_hidden} → {params.n_out}) trained "
            f"with mini-batch SGD in **pure NumPy**. Test accuracy: **{test_acc:.1f}%**."
        )
        gallery_view = gr.Gallery(
            value=gallery,
            label=f"{len(gallery)} random test images  (true label shown on hover)",
            columns=10,
            height="auto",
            allow_preview=False,
        )
        predict_btn = gr.Button("Predict selected image", variant="primary")
        with gr.Row():
            pred_plot = gr.Plot(label="Output activations")
            pred_label = gr.Markdown()

        def on_select(evt: gr.SelectData):
            return evt.index

        gallery_view.select(fn=on_select, outputs=selected_pos)
        predict_btn.click(fn=predict_digit, inputs=[selected_pos], outputs=[pred_plot, pred_label])
    return demo


def main():
    print("Loading MNIST dataset...")
    X_train, Y_train = mnist_data.load_mnist("train", TRAIN_COUNT)
    X_test, Y_test = mnist_data.load_mnist("test", TEST_COUNT)

    print(f"Training on {len(X_train)} images ({EPOCHS} epochs)...")
    params = mlp.Parameters.initialize(seed=0)
    mlp.gradient_descent(params, X_train, Y_train, EPOCHS, MINIBATCH_SIZE, LEARNING_RATE)
    test_acc = mlp.evaluate(params, X_test, Y_test)
    print(f"Test accuracy: {test_acc:.1f}%")

    build_demo(params, X_test, Y_test, test_acc).launch()


if __name__ == "__main__":
    main()
