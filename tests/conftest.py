"""Shared pytest fixtures for weave-manifest tests."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from config import ServerConfig, manifest_table  # noqa: E402

# Trimmed-down weave-daemonset-k8s.yaml from the 2.8.1 release
WEAVE_MANIFEST = """\
apiVersion: v1
kind: List
items:
  - apiVersion: v1
    kind: ServiceAccount
    metadata:
      name: weave-net
      labels:
        name: weave-net
      namespace: kube-system
  - apiVersion: rbac.authorization.k8s.io/v1
    kind: ClusterRole
    metadata:
      name: weave-net
      labels:
        name: weave-net
    rules:
      - apiGroups:
          - ''
        resources:
          - pods
          - namespaces
          - nodes
        verbs:
          - get
          - list
          - watch
  - apiVersion: apps/v1
    kind: DaemonSet
    metadata:
      name: weave-net
      labels:
        name: weave-net
      namespace: kube-system
    spec:
      minReadySeconds: 5
      selector:
        matchLabels:
          name: weave-net
      template:
        metadata:
          labels:
            name: weave-net
        spec:
          initContainers:
            - name: weave-init
              image: 'weaveworks/weave-kube:2.8.1'
              command:
                - /home/weave/init.sh
          containers:
            - name: weave
              command:
                - /home/weave/launch.sh
              env:
                - name: INIT_CONTAINER
                  value: 'true'
                - name: HOSTNAME
                  valueFrom:
                    fieldRef:
                      apiVersion: v1
                      fieldPath: spec.nodeName
              image: 'weaveworks/weave-kube:2.8.1'
              readinessProbe:
                httpGet:
                  host: 127.0.0.1
                  path: /status
                  port: 6784
              resources:
                requests:
                  cpu: 50m
            - name: weave-npc
              env:
                - name: HOSTNAME
                  valueFrom:
                    fieldRef:
                      apiVersion: v1
                      fieldPath: spec.nodeName
              image: 'weaveworks/weave-npc:2.8.1'
              resources:
                requests:
                  cpu: 50m
          hostNetwork: true
          dnsPolicy: ClusterFirstWithHostNet
          hostPID: false
          restartPolicy: Always
          securityContext:
            seLinuxOptions: {}
          serviceAccountName: weave-net
          tolerations:
            - effect: NoSchedule
              operator: Exists
      updateStrategy:
        type: RollingUpdate
"""


@pytest.fixture
def manifest_text():
    """Raw text of a Weave Net release manifest."""
    return WEAVE_MANIFEST


@pytest.fixture
def config(tmp_path):
    """Default configuration with a temporary static directory."""
    return ServerConfig(static_dir=tmp_path / 'public')


@pytest.fixture
def table(config):
    """Version table for the default release."""
    return manifest_table(config)


def make_response(text: str, status_code: int = 200):
    """Build a fake requests.Response."""
    response = MagicMock()
    response.text = text
    response.status_code = status_code
    return response


@pytest.fixture
def session(manifest_text):
    """Fake requests.Session that serves the Weave Net manifest."""
    session = MagicMock()
    session.get.return_value = make_response(manifest_text)
    return session
