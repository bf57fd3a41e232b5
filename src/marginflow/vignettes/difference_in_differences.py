"""Difference-in-differences with interaction contrasts."""

from marginflow.vignettes.document import Notebook

SLUG = "difference_in_differences"
TITLE = "Difference-in-Differences"
SUMMARY = "Interaction contrasts for a treated/control, pre/post design."


def build(nb: Notebook) -> None:
    nb.text(
        """
        In a difference-in-differences design, a treated and a control group are
        observed before and after an intervention. The effect of the intervention
        is the change in the treated group *minus* the change in the control
        group: the common trend cancels out.

        The simulated data below have a common trend of +2 points and an
        additional +4 points for the treated group after the intervention.
        """
    )
    nb.code(
        """
        from marginflow import fit_model, predict_response, test_predictions
        from marginflow.data import make_did_data

        df = make_did_data()
        model = fit_model("score ~ treatment * time", df)
        pred = predict_response(model, ["treatment", "time"])
        pred
        """
    )
    nb.code("fig = pred.plot(render=render)")
    nb.text(
        """
        ## Changes within groups

        First, the change from pre to post within each group.
        """
    )
    nb.code(
        """
        within = test_predictions(model, "time", by="treatment")
        within
        """
    )
    nb.code(
        """
        from marginflow.margins.viz import plot_contrasts

        fig = plot_contrasts(pred, within, render=render)
        """
    )
    nb.text(
        """
        ## The difference of the differences

        `test="interaction"` forms the contrast of the two changes directly.
        """
    )
    nb.code('test_predictions(model, ["treatment", "time"], test="interaction")')
    nb.text(
        """
        For a linear model this is exactly the interaction coefficient:
        """
    )
    nb.code('float(model.results.params["treatment[T.treated]:time[T.post]"])')
    nb.text(
        """
        The same quantity written as a custom hypothesis. The prediction rows are
        control/pre (`b1`), control/post (`b2`), treated/pre (`b3`) and
        treated/post (`b4`).
        """
    )
    nb.code('test_predictions(model, ["treatment", "time"], test="(b4 - b3) = (b2 - b1)")')
