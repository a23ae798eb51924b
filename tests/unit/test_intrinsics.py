"""Tests for intrinsic function expressions."""

import pytest

from predictions_transformer.intrinsics import (
    HAS_ENVIRONMENT_CONDITION,
    Conditional,
    EvaluationContext,
    GetAtt,
    Ref,
    Select,
    Split,
    Sub,
    evaluate,
    join,
    render,
    sub,
)


class TestRender:
    """Tests for rendering expression trees to template JSON."""

    def test_render_ref_and_getatt(self) -> None:
        """Ref and GetAtt render to their intrinsic forms."""
        assert render(Ref("env")) == {"Ref": "env"}
        assert render(GetAtt("predictionsIAMRole", "Arn")) == {"Fn::GetAtt": ["predictionsIAMRole", "Arn"]}

    def test_render_conditional_keeps_both_branches(self) -> None:
        """A conditional renders as Fn::If with both branches."""
        value = Conditional(HAS_ENVIRONMENT_CONDITION, join("-", ["a", Ref("env")]), "a")

        assert render(value) == {
            "Fn::If": [
                "HasEnvironmentParameter",
                {"Fn::Join": ["-", ["a", {"Ref": "env"}]]},
                "a",
            ]
        }

    def test_render_sub_with_variables(self) -> None:
        """Sub variables are rendered in sorted order."""
        value = sub("${b}-${a}", b=Ref("env"), a="x")

        assert value.variables == (("a", "x"), ("b", Ref("env")))
        assert render(value) == {"Fn::Sub": ["${b}-${a}", {"a": "x", "b": {"Ref": "env"}}]}

    def test_render_nested_containers(self) -> None:
        """Dicts and lists are rendered recursively."""
        value = {"Arn": [GetAtt("predictionsLambda", "Arn")], "Name": "plain"}

        assert render(value) == {"Arn": [{"Fn::GetAtt": ["predictionsLambda", "Arn"]}], "Name": "plain"}


class TestEvaluate:
    """Tests for evaluating expressions against concrete values."""

    def test_for_environment_with_env(self) -> None:
        """Environment context sets the parameter and condition."""
        ctx = EvaluationContext.for_environment("dev", "amplify-app-dev-abc")

        assert ctx.parameters == {"env": "dev", "AWS::StackName": "amplify-app-dev-abc"}
        assert ctx.conditions == {HAS_ENVIRONMENT_CONDITION: True}

    def test_for_environment_without_env(self) -> None:
        """No environment means env NONE and a false condition."""
        ctx = EvaluationContext.for_environment(None)

        assert ctx.parameters == {"env": "NONE"}
        assert ctx.conditions == {HAS_ENVIRONMENT_CONDITION: False}

    def test_evaluate_conditional_selects_branch(self) -> None:
        """Conditional evaluates the branch its condition selects."""
        value = Conditional(HAS_ENVIRONMENT_CONDITION, join("-", ["role", Ref("env")]), "role")

        assert evaluate(value, EvaluationContext.for_environment("dev")) == "role-dev"
        assert evaluate(value, EvaluationContext.for_environment(None)) == "role"

    def test_evaluate_select_split(self) -> None:
        """Select/Split pick a segment of the stack name."""
        value = Select(3, Split("-", Ref("AWS::StackName")))

        assert evaluate(value, EvaluationContext.for_environment(None, "amplify-app-dev-abc")) == "abc"

    def test_evaluate_sub_uses_variables_then_parameters(self) -> None:
        """Sub prefers its own variables, then parameters, and keeps unknown placeholders."""
        value = Sub("${bucket}-${env}-${AWS::Region}", (("bucket", "storage"),))

        assert evaluate(value, EvaluationContext.for_environment("dev")) == "storage-dev-${AWS::Region}"

    def test_evaluate_getatt_stays_rendered(self) -> None:
        """Attributes of other resources are left as intrinsic functions."""
        assert evaluate(GetAtt("predictionsLambda", "Arn"), EvaluationContext()) == {
            "Fn::GetAtt": ["predictionsLambda", "Arn"]
        }

    def test_evaluate_missing_parameter_raises(self) -> None:
        """Unknown parameters raise KeyError."""
        with pytest.raises(KeyError):
            evaluate(Ref("AppSyncApiId"), EvaluationContext())
