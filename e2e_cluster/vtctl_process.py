from dataclasses import dataclass

from .config import TopoSettings


@dataclass
class VtctlProcess:
    """Topology connection arguments shared by every process of a cluster."""
    name: str = "vtctl"
    binary: str = "vtctl"
    topo_implementation: str = "etcd2"
    topo_global_address: str = ""
    topo_global_root: str = "/vitess/global"

    def topo_args(self):
        return [
            "-topo_implementation", self.topo_implementation,
            "-topo_global_server_address", self.topo_global_address,
            "-topo_global_root", self.topo_global_root,
        ]


def vtctl_process_instance(topo_port, hostname, topo_settings: TopoSettings = None):
    topo_settings = topo_settings or TopoSettings()
    return VtctlProcess(
        topo_implementation=topo_settings.implementation,
        topo_global_address=f"{hostname}:{topo_port}",
        topo_global_root=topo_settings.global_root,
    )
