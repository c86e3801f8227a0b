"""Contents of the files the installer writes into the target root."""

from __future__ import annotations

from typing import Dict, List

PROFILE_PACKAGES: Dict[str, List[str]] = {
    "minimal": [
        "kde-plasma/plasma-meta",
        "kde-apps/konsole",
        "kde-apps/dolphin",
        "app-admin/sudo",
        "net-misc/networkmanager",
        "app-editors/vim",
    ],
    "standard": [
        "app-office/libreoffice-bin",
        "media-video/vlc",
        "www-client/firefox-bin",
        "media-gfx/gimp",
    ],
    "full": [
        "media-gfx/inkscape",
        "media-video/obs-studio",
        "app-emulation/qemu",
        "dev-vcs/git",
    ],
}
PROFILE_ORDER = ["minimal", "standard", "full"]

PORTAGE_PROFILE = "default/linux/amd64/23.0/desktop/plasma"

PHASE2_SCRIPT = "/root/phase2_chroot_install.sh"
PHASE2_CONFIG = "/root/zen-install.conf"
RUNONCE_SERVICE = "/etc/init.d/runonce-installer"


def packages_for(profile: str) -> List[str]:
    if profile not in PROFILE_ORDER:
        raise ValueError(f"Unknown profile: {profile}")
    out: List[str] = []
    for p in PROFILE_ORDER[: PROFILE_ORDER.index(profile) + 1]:
        out.extend(PROFILE_PACKAGES[p])
    return out


def render_make_conf(*, nproc: int, video_cards: str) -> str:
    return f"""# Generated by Gentoo Zen Installer
COMMON_FLAGS="-march=native -O2 -pipe"
CFLAGS="${{COMMON_FLAGS}}"
CXXFLAGS="${{COMMON_FLAGS}}"
FCFLAGS="${{COMMON_FLAGS}}"
FFLAGS="${{COMMON_FLAGS}}"
LDFLAGS="-Wl,-O1 -Wl,--as-needed"
MAKEOPTS="-j{nproc} -l{nproc}"
VIDEO_CARDS="{video_cards}"
ACCEPT_LICENSE="*"
GRUB_PLATFORMS="efi-64"
USE="X acl alsa bluetooth cups dbus egl elogind pulseaudio udev unicode vulkan wayland"
"""


def render_phase2_script(*, profile: str) -> str:
    """Second-stage script run once by OpenRC on first boot."""

    packages = " ".join(packages_for(profile))
    return f"""#!/bin/bash
set -euo pipefail
trap 'echo ">>> PHASE 2 INTERRUPTED: progress up to the last completed command is kept."; exit 1' INT

source /etc/profile
source {PHASE2_CONFIG}

echo "${{GENTOO_HOSTNAME}}" > /etc/hostname
echo "${{GENTOO_TIMEZONE}}" > /etc/timezone
emerge --config sys-libs/timezone-data
grep -qxF "${{GENTOO_LOCALE}} UTF-8" /etc/locale.gen || echo "${{GENTOO_LOCALE}} UTF-8" >> /etc/locale.gen
locale-gen

emerge-webrsync
emerge --sync
eselect profile set {PORTAGE_PROFILE}
emerge -vuDN @world
emerge sys-kernel/gentoo-sources sys-kernel/linux-firmware
emerge --noreplace {packages}

id -u "${{GENTOO_USER}}" >/dev/null 2>&1 || useradd -m -G wheel,audio,video,usb -s /bin/bash "${{GENTOO_USER}}"
printf '%s:%s\\n' "${{GENTOO_USER}}" "${{GENTOO_USER_PASSWORD}}" | chpasswd
printf 'root:%s\\n' "${{GENTOO_ROOT_PASSWORD}}" | chpasswd
shred -u {PHASE2_CONFIG}

rc-update del runonce-installer default
rm -f {RUNONCE_SERVICE}
echo "INSTALLATION COMPLETE!"
"""


def render_prepare_reboot(*, nproc: int) -> str:
    """Script run inside the chroot to make the target bootable and queue phase 2."""

    return f"""#!/bin/bash
set -euo pipefail
source /etc/profile
emerge-webrsync
emerge --sync
emerge --noreplace sys-boot/grub:2 sys-kernel/gentoo-sources
eselect kernel set 1
cd /usr/src/linux
make defconfig
make -j{nproc}
make modules_install
make install
grub-install --target=x86_64-efi --efi-directory=/efi --bootloader-id=Gentoo
grub-mkconfig -o /boot/grub/grub.cfg
cat > {RUNONCE_SERVICE} <<'EOT'
#!/sbin/openrc-run
depend() {{
    need localmount net
}}
start() {{
    ebegin "Starting Phase 2 Installation"
    {PHASE2_SCRIPT} &> /root/phase2_install.log
    eend $?
}}
EOT
chmod +x {RUNONCE_SERVICE}
rc-update add runonce-installer default
"""
