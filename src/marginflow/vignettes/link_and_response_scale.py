"""Link scale, response scale and odds ratios for a logistic model."""

from marginflow.vignettes.document import Notebook

SLUG = "link_and_response_scale"
TITLE = "Link Scale, Response Scale and Odds Ratios"
SUMMARY = "Risk differences, log-odds differences and odds ratios; slopes and the refused exp scale."


def build(nb: Notebook) -> None:
    nb.text(
        """
        For generalized linear models the same comparison can be expressed on
        different scales. With a logistic model:

        - `scale="response"` compares predicted probabilities (risk
          differences),
        - `scale="link"` compares log-odds,
        - `scale="odds_ratios"` (or `"exp"`) exponentiates the link-scale
          differences into ratios.
        """
    )
    nb.code(
        """
        import numpy as np
        from marginflow import fit_model, predict_response, test_predictions
        from marginflow.data import make_binary_data

        df = make_binary_data()
        model = fit_model("outcome ~ grp + education + hours", df, family="binomial")
        predict_response(model, "grp")
        """
    )
    nb.text(
        """
        Predictions on the response scale are probabilities. Their confidence
        intervals are computed on the link scale and back-transformed, so they
        stay within 0 and 1.
        """
    )
    nb.code('predict_response(model, "grp", scale="link")')
    nb.text("## Risk differences")
    nb.code('test_predictions(model, "grp")')
    nb.text(
        """
        ## Differences in log-odds and odds ratios

        Without interactions, the link-scale difference equals the coefficient of
        `grp`, and the odds ratio is its exponential, whatever the values of the
        other predictors. `test="reference"` compares the treatment group with
        the control group, matching the direction of the coefficient.
        """
    )
    nb.code('test_predictions(model, "grp", test="reference", scale="link")')
    nb.code('test_predictions(model, "grp", test="reference", scale="odds_ratios")')
    nb.code('float(np.exp(model.results.params["grp[T.treatment]"]))')
    nb.text(
        """
        Risk differences, in contrast, depend on where the other predictors are
        held:
        """
    )
    nb.code('test_predictions(model, "grp", by="education")')
    nb.code(
        """
        fig = predict_response(model, ["education", "grp"]).plot(render=render)
        """
    )
    nb.text(
        """
        ## Numeric focal terms

        For a numeric focal term given without values, `test_predictions()`
        estimates its slope. On the response scale this is the change in the
        predicted probability per hour; on the link scale it is the change in
        log-odds, i.e. the coefficient.
        """
    )
    nb.code('test_predictions(model, "hours")')
    nb.code('test_predictions(model, "hours", scale="link")')
    nb.text(
        """
        A slope is not a difference between two predictions, so it has no ratio
        form. Asking for exponentiated slopes is refused:
        """
    )
    nb.code('test_predictions(model, "hours", scale="exp")', expect_error=True)
    nb.text(
        """
        Giving explicit values turns the numeric term into a set of predictions
        again, and these can be compared as odds ratios.
        """
    )
    nb.code('test_predictions(model, "hours [10, 30]", scale="odds_ratios")')
    nb.code(
        """
        fig = predict_response(model, ["hours", "grp"]).plot(render=render)
        """
    )
