from nixwizard.lib.args import WizardConfigHandler, wizard_config_handler
from nixwizard.lib.configuration import ConfigurationOutput
from nixwizard.lib.disk.layout import Disk
from nixwizard.lib.disk.utils import find_disk, get_all_disks, load_disks
from nixwizard.lib.exceptions import DiskError
from nixwizard.lib.models.disk_layout import DiskLayoutConfiguration, DiskLayoutType
from nixwizard.lib.output import FormattedOutput, debug, info


def select_disk(disks: list[Disk], device: str | None) -> Disk:
	"""
	Picks the disk to partition. Without a device the only available
	disk is used, with more than one disk a device has to be given.
	"""
	if not disks:
		raise DiskError('No disks available for installation')

	info(FormattedOutput.as_table(disks))

	if device:
		if disk := find_disk(disks, device):
			return disk
		raise DiskError(f'Disk {device} was not found or hosts the running system')

	if len(disks) == 1:
		return disks[0]

	names = ', '.join(disk.name for disk in disks)
	raise DiskError(f'Several disks are available ({names}), select one with --device')


def plan_disk(disk: Disk, disk_config: DiskLayoutConfiguration | None) -> None:
	debug(f'Disk layout before planning:\n{disk.partition_table()}')

	if disk_config is None:
		disk_config = DiskLayoutConfiguration(DiskLayoutType.Default)

	info(f'Planning {disk.device_path}: {disk_config.config_type.display_msg()}')
	disk_config.apply(disk)

	info(f'Planned layout:\n{disk.partition_table()}')


def guided(handler: WizardConfigHandler) -> None:
	args = handler.args
	config = handler.config

	if args.lsblk_json:
		disks = load_disks(args.lsblk_json)
	else:
		disks = get_all_disks()

	disk = select_disk(disks, config.device)
	config.device = disk.name

	plan_disk(disk, config.disk_config)

	output = ConfigurationOutput(config, disk)
	output.write_debug()

	if args.dry_run:
		info(output.disko_config_to_json())
		return

	output.save(args.output)


guided(wizard_config_handler())
