#!/usr/bin/env python
from __future__ import annotations

import argparse
import csv
from pathlib import Path


HEADER = [
    "工号",
    "员工姓名",
    "城市",
    "产假开始日期",
    "员工产前12个月的月均工资",
    "是否难产",
    "胎儿数量",
    "是否流产",
    "怀孕时间段",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="生成批量产假津贴计算 CSV 模板")
    parser.add_argument("--output", required=True, help="输出文件路径 (.csv)")
    parser.add_argument("--start-date", default="2024-03-01", help="产假开始日期，格式 YYYY-MM-DD")
    parser.add_argument("--count", type=int, default=3, help="生成的员工行数")
    parser.add_argument("--city", default="北京", help="城市")
    parser.add_argument("--salary", type=float, default=15000, help="月均工资")
    args = parser.parse_args()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(HEADER)
        for index in range(1, args.count + 1):
            writer.writerow(
                [
                    f"EMP{index:03d}",
                    f"员工{index}",
                    args.city,
                    args.start_date,
                    f"{args.salary:.2f}",
                    "否",
                    1,
                    "否",
                    "",
                ]
            )

    print(f"批量计算 CSV 模板已生成: {output}")


if __name__ == "__main__":
    main()
