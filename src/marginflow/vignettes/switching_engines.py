"""Switching estimation engines and margin options."""

from marginflow.backends import available_engines
from marginflow.vignettes.document import Notebook

SLUG = "switching_engines"
TITLE = "Switching Engines and Margin Options"
SUMMARY = "The same questions answered with both engines and all four margin options."


def build(nb: Notebook) -> None:
    has_me = available_engines()["marginaleffects"]
    nb.metadata["engines"] = [name for name, ok in available_engines().items() if ok]

    nb.text(
        """
        Predictions and comparisons can be computed by two engines:

        - `"statsmodels"` (default) evaluates the model's design matrix on a
          reference grid and applies the delta method to the model's covariance
          matrix.
        - `"marginaleffects"` sends the same grid to the `marginaleffects`
          package and lets it compute the estimates and standard errors.

        Both are selected with the `engine` argument and return the same result
        objects, so switching engines does not change the rest of an analysis.
        """
    )
    nb.code(
        """
        from marginflow import fit_model, predict_response, test_predictions
        from marginflow.backends import available_engines
        from marginflow.data import make_treatment_data

        model = fit_model("outcome ~ grp * episode + sex + age", make_treatment_data())
        available_engines()
        """
    )
    nb.text(
        """
        ## Margin options

        The `margin` argument decides what happens to the non-focal predictors
        (`sex` and `age` here):

        - `"mean_reference"`: numeric predictors at their mean, factors at their
          reference level.
        - `"mean_mode"`: numeric predictors at their mean, factors at their most
          frequent level.
        - `"marginalmeans"`: numeric predictors at their mean, predictions
          averaged over all factor levels with equal weights (estimated marginal
          means).
        - `"empirical"`: predictions made for every observation with the focal
          terms set to each value, then averaged (counterfactual or "average"
          predictions).
        """
    )
    nb.code(
        """
        import pandas as pd
        from marginflow.margins.grid import MARGINS

        rows = []
        for margin in MARGINS:
            pred = predict_response(model, "grp", margin=margin)
            diff = test_predictions(model, "grp", margin=margin)
            rows.append(
                {
                    "margin": margin,
                    "control": pred.table.loc[0, "predicted"],
                    "treatment": pred.table.loc[1, "predicted"],
                    "difference": diff.table.loc[0, "estimate"],
                    "p_value": diff.table.loc[0, "p_value"],
                }
            )
        pd.DataFrame(rows).round(3)
        """
    )
    nb.text(
        """
        The predicted levels shift with the margin option, and here the group
        difference moves too. `grp` interacts with `episode`, so the difference
        depends on where `episode` is held: `mean_reference` and `mean_mode` both
        compare the groups in episode 1 (the reference level, and also the most
        frequent one), `marginalmeans` averages the three episode-specific
        differences with equal weights, and `empirical` weights them by how often
        each episode occurs in the data. `sex` and `age` do not interact with
        `grp`, so they cancel out of the comparison.

        Without the interaction, the difference is the same under every margin
        option:
        """
    )
    nb.code(
        """
        additive = fit_model("outcome ~ grp + episode + sex + age", make_treatment_data())
        pd.DataFrame(
            {
                "margin": MARGINS,
                "difference": [
                    test_predictions(additive, "grp", margin=m).table.loc[0, "estimate"]
                    for m in MARGINS
                ],
            }
        ).round(3)
        """
    )

    nb.text("## Switching to marginaleffects")
    if not has_me:
        nb.text(
            """
            *The `marginaleffects` package is not installed in the environment that
            built this document, so the chunks below are shown without output.
            Install it with `pip install marginflow[marginaleffects]`.*
            """
        )

    nb.code(
        """
        test_predictions(model, "grp", by="episode", engine="marginaleffects")
        """,
        evaluate=has_me,
    )
    nb.text(
        """
        For a linear model both engines agree to numerical precision. With a
        non-linear link they can differ for `margin="marginalmeans"`: the
        statsmodels engine averages over factor levels on the link scale and
        back-transforms (the estimated-marginal-means convention), while
        marginaleffects averages predictions on the response scale.
        """
    )
    nb.code(
        """
        from marginflow.data import make_binary_data

        logit = fit_model("outcome ~ grp + education + hours", make_binary_data(), family="binomial")
        sm_pred = predict_response(logit, "grp", margin="marginalmeans")
        me_pred = predict_response(logit, "grp", margin="marginalmeans", engine="marginaleffects")
        pd.DataFrame(
            {
                "grp": sm_pred.table["grp"],
                "statsmodels": sm_pred.table["predicted"],
                "marginaleffects": me_pred.table["predicted"],
            }
        ).round(4)
        """,
        evaluate=has_me,
    )
    nb.text(
        """
        With `margin="empirical"` both engines average on the response scale and
        agree.
        """
    )
    nb.code(
        """
        sm_diff = test_predictions(logit, "grp", margin="empirical")
        me_diff = test_predictions(logit, "grp", margin="empirical", engine="marginaleffects")
        pd.concat([sm_diff.table, me_diff.table], keys=["statsmodels", "marginaleffects"])
        """,
        evaluate=has_me,
    )
