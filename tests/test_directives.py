#!/usr/bin/env python3
"""Tests for weave/directives.py - query-parameter directives."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
from weave.directives import (
    ALLOWED_ENV_VARS,
    Directive,
    DirectiveKind,
    SecretRef,
    apply_directive,
    apply_directives,
    classify,
    replace_image_tag,
    upsert_env_var,
)
from weave.document import locate_target, parse


@pytest.fixture
def daemonset(manifest_text):
    """The DaemonSet from the release manifest."""
    return locate_target(parse(manifest_text))[1]


def _pod(daemonset):
    return daemonset['spec']['template']['spec']


def _weave_env(daemonset):
    return _pod(daemonset)['containers'][0]['env']


def _env_entries(daemonset, name):
    return [e for e in _weave_env(daemonset) if e['name'] == name]


def _images(daemonset):
    pod = _pod(daemonset)
    return [c['image'] for c in pod.get('initContainers', []) + pod['containers']]


class TestClassify:
    """Test directive classification."""

    @pytest.mark.parametrize('key,kind,name', [
        ('env.WEAVE_MTU', DirectiveKind.ENV, 'WEAVE_MTU'),
        ('env.', DirectiveKind.ENV, ''),
        ('seLinuxOptions.type', DirectiveKind.SELINUX, 'type'),
        ('version', DirectiveKind.VERSION, ''),
        ('disable-npc', DirectiveKind.DISABLE_NPC, ''),
        ('password-secret', DirectiveKind.PASSWORD_SECRET, ''),
        ('Version', DirectiveKind.UNKNOWN, ''),
        ('myenv.WEAVE_MTU', DirectiveKind.UNKNOWN, ''),
        ('env', DirectiveKind.UNKNOWN, ''),
    ])
    def test_kinds(self, key, kind, name):
        directive = classify(key, 'x')
        assert directive.kind is kind
        assert directive.name == name
        assert directive.value == 'x'

    def test_prefix_before_named(self):
        """Prefixed keys are never treated as named directives."""
        assert classify('env.version', '1').kind is DirectiveKind.ENV


class TestUpsertEnvVar:
    """Test the env var insert-or-update rule."""

    def test_append_new(self):
        env = [{'name': 'A', 'value': '1'}]
        upsert_env_var(env, 'B', value='2')
        assert env == [{'name': 'A', 'value': '1'}, {'name': 'B', 'value': '2'}]

    def test_update_in_place(self):
        env = [{'name': 'A', 'value': '1'}, {'name': 'B', 'value': '2'}]
        upsert_env_var(env, 'A', value='3')
        assert env == [{'name': 'A', 'value': '3'}, {'name': 'B', 'value': '2'}]

    def test_idempotent(self):
        """Applying the same upsert twice equals applying it once."""
        once, twice = [], []
        upsert_env_var(once, 'WEAVE_MTU', value='1337')
        upsert_env_var(twice, 'WEAVE_MTU', value='1337')
        upsert_env_var(twice, 'WEAVE_MTU', value='1337')
        assert once == twice == [{'name': 'WEAVE_MTU', 'value': '1337'}]

    def test_secret_replaces_value(self):
        """Setting a secret reference removes the plain value."""
        env = [{'name': 'WEAVE_PASSWORD', 'value': 'hunter2'}]
        upsert_env_var(env, 'WEAVE_PASSWORD', secret=SecretRef('weave-pw', 'pw'))
        assert env == [{
            'name': 'WEAVE_PASSWORD',
            'valueFrom': {'secretKeyRef': {'name': 'weave-pw', 'key': 'pw'}},
        }]

    def test_value_replaces_secret(self):
        """Setting a plain value removes the secret reference."""
        env = [{'name': 'WEAVE_PASSWORD', 'valueFrom': {'secretKeyRef': {'name': 's', 'key': 's'}}}]
        upsert_env_var(env, 'WEAVE_PASSWORD', value='hunter2')
        assert env == [{'name': 'WEAVE_PASSWORD', 'value': 'hunter2'}]


class TestEnvDirective:
    """Test env.NAME=VALUE."""

    def test_adds_allowed_var(self, daemonset):
        apply_directives(daemonset, [('env.WEAVE_MTU', '1337')])
        assert _env_entries(daemonset, 'WEAVE_MTU') == [{'name': 'WEAVE_MTU', 'value': '1337'}]

    def test_repeated_param_single_entry(self, daemonset):
        """The same parameter twice yields one entry."""
        apply_directives(daemonset, [('env.WEAVE_MTU', '1337'), ('env.WEAVE_MTU', '1337')])
        assert _env_entries(daemonset, 'WEAVE_MTU') == [{'name': 'WEAVE_MTU', 'value': '1337'}]

    def test_last_value_wins(self, daemonset):
        apply_directives(daemonset, [('env.CONN_LIMIT', '100'), ('env.CONN_LIMIT', '200')])
        assert _env_entries(daemonset, 'CONN_LIMIT') == [{'name': 'CONN_LIMIT', 'value': '200'}]

    def test_unknown_var_dropped(self, daemonset):
        """Names outside the allow-list never create entries."""
        before = list(_weave_env(daemonset))
        apply_directives(daemonset, [('env.UNKNOWN_VAR', 'x'), ('env.INIT_CONTAINER', 'false')])
        assert _weave_env(daemonset) == before

    def test_only_weave_container(self, daemonset):
        """Env vars go to the first container only."""
        apply_directives(daemonset, [('env.IPALLOC_RANGE', '10.32.0.0/12')])
        npc_env = _pod(daemonset)['containers'][1]['env']
        assert all(e['name'] != 'IPALLOC_RANGE' for e in npc_env)

    def test_allow_list_size(self):
        assert len(ALLOWED_ENV_VARS) == 12

    def test_no_containers_is_noop(self):
        """A DaemonSet without containers is left alone."""
        target = {'kind': 'DaemonSet', 'spec': {'template': {'spec': {}}}}
        apply_directives(target, [('env.WEAVE_MTU', '1337')])
        assert target == {'kind': 'DaemonSet', 'spec': {'template': {'spec': {}}}}


class TestSELinuxDirective:
    """Test seLinuxOptions.NAME=VALUE."""

    def test_sets_option(self, daemonset):
        apply_directives(daemonset, [('seLinuxOptions.type', 'spc_t')])
        assert _pod(daemonset)['securityContext']['seLinuxOptions'] == {'type': 'spc_t'}

    def test_any_name_written_through(self, daemonset):
        """Option names and values are not validated."""
        apply_directives(daemonset, [('seLinuxOptions.whatever', '!!'), ('seLinuxOptions.level', 's0')])
        assert _pod(daemonset)['securityContext']['seLinuxOptions'] == {'whatever': '!!', 'level': 's0'}

    def test_missing_pod_spec_is_noop(self):
        target = {'kind': 'DaemonSet'}
        apply_directives(target, [('seLinuxOptions.type', 'spc_t')])
        assert target == {'kind': 'DaemonSet'}


class TestVersionDirective:
    """Test version=TAG."""

    def test_retags_all_images(self, daemonset):
        apply_directives(daemonset, [('version', '2.8.0')])
        assert _images(daemonset) == [
            'weaveworks/weave-kube:2.8.0',
            'weaveworks/weave-kube:2.8.0',
            'weaveworks/weave-npc:2.8.0',
        ]

    @pytest.mark.parametrize('image,expected', [
        ('weaveworks/weave-kube:2.8.1', 'weaveworks/weave-kube:latest'),
        ('registry:5000/weave-kube:2.8.1', 'registry:5000/weave-kube:latest'),
        ('weaveworks/weave-kube', 'weaveworks/weave-kube'),
        ('registry:5000/weave-kube', 'registry:5000/weave-kube'),
        ('weave-kube:', 'weave-kube:latest'),
    ])
    def test_replace_image_tag(self, image, expected):
        assert replace_image_tag(image, 'latest') == expected

    def test_without_init_containers(self, daemonset):
        del _pod(daemonset)['initContainers']
        apply_directives(daemonset, [('version', '2.8.0')])
        assert _images(daemonset) == ['weaveworks/weave-kube:2.8.0', 'weaveworks/weave-npc:2.8.0']

    def test_after_disable_npc(self, daemonset):
        """Once weave-npc is removed, version only touches what is left."""
        apply_directives(daemonset, [('disable-npc', 'true'), ('version', '2.8.0')])
        assert _images(daemonset) == ['weaveworks/weave-kube:2.8.0', 'weaveworks/weave-kube:2.8.0']

    def test_before_disable_npc(self, daemonset):
        """Order matters: retag first, then remove."""
        apply_directives(daemonset, [('version', '2.8.0'), ('disable-npc', 'true')])
        assert [c['name'] for c in _pod(daemonset)['containers']] == ['weave']
        assert _images(daemonset) == ['weaveworks/weave-kube:2.8.0', 'weaveworks/weave-kube:2.8.0']

    def test_no_containers_is_noop(self):
        target = {'spec': {'template': {'spec': {'containers': []}}}}
        apply_directives(target, [('version', '2.8.0')])
        assert target == {'spec': {'template': {'spec': {'containers': []}}}}


class TestDisableNpcDirective:
    """Test disable-npc=true."""

    def test_removes_npc_and_sets_env(self, daemonset):
        apply_directives(daemonset, [('disable-npc', 'true')])
        assert [c['name'] for c in _pod(daemonset)['containers']] == ['weave']
        assert _env_entries(daemonset, 'EXPECT_NPC') == [{'name': 'EXPECT_NPC', 'value': '0'}]

    @pytest.mark.parametrize('value', ['false', '', 'TRUE', '1', 'yes'])
    def test_other_values_noop(self, daemonset, value):
        apply_directives(daemonset, [('disable-npc', value)])
        assert [c['name'] for c in _pod(daemonset)['containers']] == ['weave', 'weave-npc']
        assert _env_entries(daemonset, 'EXPECT_NPC') == []

    def test_overrides_existing_expect_npc(self, daemonset):
        apply_directives(daemonset, [('env.EXPECT_NPC', '1'), ('disable-npc', 'true')])
        assert _env_entries(daemonset, 'EXPECT_NPC') == [{'name': 'EXPECT_NPC', 'value': '0'}]

    def test_twice_removes_once(self, daemonset):
        """Only the first weave-npc container is removed per directive."""
        _pod(daemonset)['containers'].append({'name': 'sidecar', 'image': 'busybox:1'})
        apply_directives(daemonset, [('disable-npc', 'true'), ('disable-npc', 'true')])
        assert [c['name'] for c in _pod(daemonset)['containers']] == ['weave', 'sidecar']


class TestPasswordSecretDirective:
    """Test password-secret=NAME."""

    def test_adds_secret_ref(self, daemonset):
        apply_directives(daemonset, [('password-secret', 'mysecret')])
        assert _env_entries(daemonset, 'WEAVE_PASSWORD') == [{
            'name': 'WEAVE_PASSWORD',
            'valueFrom': {'secretKeyRef': {'name': 'mysecret', 'key': 'mysecret'}},
        }]

    def test_replaces_plain_value(self, daemonset):
        _weave_env(daemonset).append({'name': 'WEAVE_PASSWORD', 'value': 'hunter2'})
        apply_directives(daemonset, [('password-secret', 'mysecret')])
        entries = _env_entries(daemonset, 'WEAVE_PASSWORD')
        assert len(entries) == 1
        assert 'value' not in entries[0]
        assert entries[0]['valueFrom'] == {'secretKeyRef': {'name': 'mysecret', 'key': 'mysecret'}}

    def test_empty_value_noop(self, daemonset):
        apply_directives(daemonset, [('password-secret', '')])
        assert _env_entries(daemonset, 'WEAVE_PASSWORD') == []

    def test_not_settable_through_env(self, daemonset):
        """WEAVE_PASSWORD is not on the env allow-list."""
        apply_directives(daemonset, [('env.WEAVE_PASSWORD', 'hunter2')])
        assert _env_entries(daemonset, 'WEAVE_PASSWORD') == []


class TestUnknownDirective:
    """Test unrecognized parameters."""

    def test_ignored(self, daemonset, manifest_text):
        untouched = locate_target(parse(manifest_text))[1]
        apply_directives(daemonset, [('foo', 'bar'), ('k8s', '1.28')])
        assert daemonset == untouched

    def test_logged(self, daemonset, caplog):
        with caplog.at_level('INFO', logger='weave.directives'):
            apply_directive(daemonset, Directive(DirectiveKind.UNKNOWN, 'foo', 'bar'))
        assert 'Ignoring unknown option foo' in caplog.text
