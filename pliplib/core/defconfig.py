#!/usr/bin/env python3

import sys

#============================================

if sys.platform.startswith('win'):
	_SYSTEM_PROGRAMS = (
		"texteditor=notepad\n"
		"audacity=C:\\\\Program Files (x86)\\\\Audacity\\\\Audacity.exe\n"
	)
else:
	_SYSTEM_PROGRAMS = (
		"texteditor=gnome-text-editor\n"
		"audacity=audacity\n"
	)

# always loaded before any plip.ini file
DEFAULT_CONFIG = (
	"[programs]\n"
	"ffmpeg=ffmpeg\n"
	"ffprobe=ffprobe\n"
	"audiowaveform=audiowaveform\n"
	+ _SYSTEM_PROGRAMS +

	"\n[filters]\n"
	# aproc step 1 is compression, step 2 is leveling
	"aproc1=compress\n"
	"alevel1=-18\n"
	"compress=acompressor=level_in=$(level)dB\n"
	"aproc2=level\n"
	"alevel2=-18\n"
	"level=alimiter=level_in=$(level)dB:level=0\n"

	# optional inverse gate, keyed on another track
	"\nigate=alimiter=level_in=$(level)dB:level=0,aformat=channel_layouts=stereo [aud]; sine [pure]; amovie=$(dep1) [voice]; \\\n"
	"    [pure][voice] sidechaingate=level_in=8:ratio=9000:attack=10:release=1000,atrim=0.2,agate=threshold=0.5:ratio=9000 [gate]; \\\n"
	"    [aud][gate]   sidechaincompress=level_in=0.5:threshold=-20dB:ratio=20:attack=1000:release=1000,alimiter=level_in=-8dB:level=0\n\n"

	"resample=aresample=flags=res:min_comp=0.001:min_hard_comp=0.1:first_pts=0\n"
	"video=null\n"
	"ffclip=discard\n"

	"\n[formats]\n"
	"vformat=mkv\n"
	"vcodec=libx264\n"
	"vcrf=16\n"
	"vbr=\n"
	"aiformat=flac\n"
	"aicodec=flac\n"
	"aformat=wav\n"
	"acodec=pcm_s16le\n"
	"abr=\n"

	"\n[steps]\n"
	"noiser=n\n"
	"aproc=2\n"
	"videobypass=\n"

	"\n[tracks]\n"
	"include=y\n"

	"\n[marktofilter]\n"
	"fflen=8\n"
	"minffspeed=4\n"
	"maxffpitch=0\n"
	"fffilter=null\n"
)
