"""Introduction: predictions, pairwise comparisons and annotated plots."""

from marginflow.vignettes.document import Notebook

SLUG = "introduction_comparisons"
TITLE = "Introduction: Contrasts and Pairwise Comparisons"
SUMMARY = "Predictions, pairwise comparisons, 'by', custom hypotheses, annotated plots."


def build(nb: Notebook) -> None:
    nb.text(
        """
        Regression coefficients answer narrow questions. Once a model contains
        interactions or a non-linear link, the question "is the outcome different
        between these groups?" is better answered by comparing *predictions*:
        compute the model-implied outcome for each level of the focal terms, then
        test the differences between them.

        This document walks through that workflow with a linear model. We use a
        simulated study in which a treatment and a control group are measured in
        three episodes.
        """
    )
    nb.code(
        """
        from marginflow import fit_model, predict_response, test_predictions
        from marginflow.data import make_treatment_data

        df = make_treatment_data()
        df.head()
        """
    )
    nb.code(
        """
        model = fit_model("outcome ~ grp * episode + sex + age", df)
        pred = predict_response(model, ["episode", "grp"])
        pred
        """
    )
    nb.text(
        """
        Non-focal predictors are held at typical values: the mean for numeric
        predictors and the reference level for factors (`margin="mean_reference"`).
        The footer of the table names the values used.

        ## Pairwise comparisons

        Is there a difference between the two groups? With one focal term,
        `test_predictions()` compares all pairs of its levels.
        """
    )
    nb.code('test_predictions(model, "grp")')
    nb.text(
        """
        Because `grp` interacts with `episode`, this difference is the group
        difference in the reference episode. Giving both terms compares every
        pair of the six cells; p-values can be adjusted for multiple testing.
        """
    )
    nb.code('test_predictions(model, ["grp", "episode"], p_adjust="holm")')
    nb.text(
        """
        Usually we do not want all fifteen comparisons. With `by`, the groups are
        compared within each episode instead.
        """
    )
    nb.code(
        """
        by_episode = test_predictions(model, "grp", by="episode")
        by_episode
        """
    )
    nb.text(
        """
        ## Plotting the differences

        The same comparisons can be drawn on top of the predictions. Each bracket
        connects two compared predictions and is labelled with the estimated
        difference and its significance.
        """
    )
    nb.code(
        """
        from marginflow.margins.viz import plot_contrasts

        fig = plot_contrasts(pred, by_episode, render=render)
        """
    )
    nb.text(
        """
        ## Other comparison types

        Besides `"pairwise"`, `test` accepts `"consecutive"` (each level against
        the previous one), `"reference"` (each level against the first) and
        `"contrast"` (each level against the average of all levels).
        """
    )
    nb.code('test_predictions(model, "episode", by="grp", test="consecutive")')
    nb.text(
        """
        ## Custom hypotheses

        Any linear combination of predictions can be tested by referring to the
        rows of the prediction grid as `b1, b2, ...`. For the terms
        `["grp", "episode"]`, rows 1-3 are the control group in episodes 1-3 and
        rows 4-6 the treatment group. Is the treatment effect in episode 3 the
        same as in episode 1?
        """
    )
    nb.code('test_predictions(model, ["grp", "episode"], test="(b6 - b3) = (b4 - b1)")')
    nb.text(
        """
        ## Comparing slopes

        A numeric focal term given without values is treated as a slope. Here the
        burden of caregivers increases with weekly hours of care, and more steeply
        for more dependent care recipients.
        """
    )
    nb.code(
        """
        from marginflow.data import make_care_data

        care = fit_model("burden ~ hours * dependency + sex", make_care_data())
        test_predictions(care, "hours")
        """
    )
    nb.code('test_predictions(care, ["hours", "dependency"], test="consecutive")')
    nb.code(
        """
        fig = predict_response(care, ["hours", "dependency"]).plot(render=render)
        """
    )
