#!/usr/bin/env python3
import argparse
import os.path
import time

from FrontPanel import (
    PanelJob, OutFormat, classify, panel_features, render_panel, save_image
)


def main():
    args_parser = argparse.ArgumentParser()
    args_parser.add_argument('--format',
                             choices=[f.value for f in OutFormat],
                             default=None,
                             help='Which format to render (all by default)')
    example_panels = list(PanelJob.example_names())
    args_parser.add_argument('--panel',
                             choices=example_panels,
                             default=None,
                             help='Which example panel (all by default)')
    args_parser.add_argument('--copper',
                             action='store_true',
                             help='Fill the area between the rails')
    cli_args = args_parser.parse_args()
    base_dir = os.path.relpath('examples/')
    os.makedirs(base_dir, exist_ok=True)
    out_formats = [OutFormat(cli_args.format)] if cli_args.format else OutFormat
    for panel_name in ([cli_args.panel] if cli_args.panel else example_panels):
        print(f'Building example outputs for: {panel_name}')
        try:
            job = PanelJob.from_example(panel_name)
            buckets = classify(panel_features(job))
        except ValueError as e:
            print(f'Error processing {panel_name}: {e}; Skipping')
            continue
        for out_format in out_formats:
            start_time = time.process_time()
            panel_img = render_panel(job.panel, buckets, out_format, job.style, copper=cli_args.copper)
            panel_filename = os.path.join(base_dir, f'{panel_name}.Panel')
            print(f' Render time: {round(time.process_time() - start_time, 3)}')
            save_image(panel_img, panel_filename)


if __name__ == '__main__':
    main()
