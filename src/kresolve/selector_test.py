import pytest

from kresolve.errors import SelectorError
from kresolve.selector import LabelSelector, Requirement, parse_kinds


def test__LabelSelector__parse() -> None:
    assert LabelSelector.parse("app=web, tier!=cache,env in (prod, staging),!legacy,team").requirements == (
        Requirement("app", "=", ("web",)),
        Requirement("tier", "!=", ("cache",)),
        Requirement("env", "in", ("prod", "staging")),
        Requirement("legacy", "!"),
        Requirement("team", "exists"),
    )
    assert LabelSelector.parse("app.kubernetes.io/name==web").requirements == (
        Requirement("app.kubernetes.io/name", "=", ("web",)),
    )
    assert LabelSelector.parse("").requirements == ()
    assert LabelSelector.parse("app=").matches({"app": ""})


@pytest.mark.parametrize("selector", ["app in (a,b", "app=web,,tier=x", "=web", "app=we b", "-app=web"])
def test__LabelSelector__parse__malformed(selector: str) -> None:
    with pytest.raises(SelectorError):
        LabelSelector.parse(selector)


def test__LabelSelector__matches() -> None:
    selector = LabelSelector.parse("app=web,env notin (dev),!legacy")
    assert selector.matches({"app": "web", "env": "prod"})
    assert selector.matches({"app": "web"})
    assert not selector.matches({"app": "web", "env": "dev"})
    assert not selector.matches({"app": "web", "legacy": "true"})
    assert not selector.matches({"app": "api"})
    assert not selector.matches(None)
    assert LabelSelector.parse("").matches(None)


def test__LabelSelector__matches__scalar_label_values() -> None:
    labels = {"version": 1, "enabled": True}
    assert LabelSelector.parse("version=1").matches(labels)
    assert not LabelSelector.parse("version!=1").matches(labels)
    assert LabelSelector.parse("version in (1,2),enabled=true").matches(labels)
    assert not LabelSelector.parse("enabled notin (true)").matches(labels)


def test__parse_kinds() -> None:
    assert parse_kinds("Deployment, ConfigMap") == frozenset({"Deployment", "ConfigMap"})
    with pytest.raises(SelectorError):
        parse_kinds("Deployment,")
    with pytest.raises(SelectorError):
        parse_kinds("apps/v1")
